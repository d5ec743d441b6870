#!/usr/bin/env python
from setuptools import setup, find_packages

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name='httpx-ldaptransport',
    version='1.0.0',
    description='An httpx transport that answers ldap:// URLs with directory search results',
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords=['httpx', 'ldap'],
    author="Caltech IMSS ADS",
    author_email="imss-ads-staff@caltech.edu",
    packages=find_packages(exclude=['bin', 'ldaptransport.tests']),
    include_package_data=True,
    install_requires=[
        'django',
        'httpx',
        'ldap_filter',
        'python-ldap',
    ],
    extras_require={
        'test': [
            'python-ldap-faker',
            'pytest',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3"
    ],
)
