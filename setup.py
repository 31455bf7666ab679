from setuptools import setup

from fsbackup.version import __version__

setup(
    name="fsbackup",
    version=__version__,
    author="Ceshine Lee",
    author_email="ceshine@ceshine.net",
    description="Back up and restore a Firestore collection as JSON files",
    license="Apache License, Version 2.0",
    url="",
    packages=['fsbackup'],
    install_requires=[
        "requests",
        "google-auth",
        "typer"
    ],
    extras_require={
        "test": ["pytest", "pytest-mock"]
    },
    entry_points={
        "console_scripts": ["fsbackup=fsbackup.cli:app"]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9"
    ],
    keywords="firestore backup"
)
