#!/usr/bin/python

from setuptools import setup

setup(
    name = 'yumsync',
    version = '1.0',
    description = 'Yum repository mirroring tool',
    license = 'GPLv2',
    python_requires = '>=3.7',
    packages = [ 'yumsync' , 'yumsync.lists' ],
    install_requires = [ 'python-gnupg' , 'createrepo_c' ],
    extras_require = { 'test' : [ 'pytest' ] },
    entry_points = { 'console_scripts' : [ 'yumsync = yumsync.command:main' ] },
    data_files = [
                 ( 'share/yumsync' , [ 'docs/samples/yumsync.conf' ] )
                 ]
    )
