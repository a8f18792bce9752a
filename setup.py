#! /usr/bin/env python
# SPDX-License-Identifier: GPL-2.0-or-later

from setuptools import setup, find_packages

setup(
    name='ladder',
    version='1.0',
    description='Orchestrates bot-versus-bot ladder matches',
    packages=find_packages(),
    python_requires='>=3.8',
    install_requires=[
        'PyYAML',
        'aiohttp',
        'prometheus_client',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
            'pytest-aiohttp',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': ['ladder=ladder.__main__:main'],
    },
    zip_safe=False,
)
