#!/usr/bin/env python
from setuptools import setup
setup(
    name='brush',
    version='1.0',
    description='Pastebin API client with parallel HTTP requests',
    author='Six Apart',
    author_email='python@sixapart.com',

    packages=['crackle', 'brush'],
    provides=['crackle', 'brush'],
    python_requires='>=3.7',
    install_requires=['httplib2>=0.4.0', 'pycurl>=7.43'],
    extras_require={'test': ['pytest']},
)
