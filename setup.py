#!/usr/bin/env python

from setuptools import setup, find_packages

setup(
    name='swordserver',
    version='2.0',
    description='SWORD v2 server protocol engine',
    author='Richard Jones',
    author_email='rich.d.jones@gmail.com',
    url='http://www.swordapp.org/',
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        "lxml>=4.9",
        "web.py>=0.62"
    ],
    extras_require={
        "test" : ["pytest"]
    }
)
