#!/usr/bin/env python3
"""
Setup script for Constellation
Branchable version tree for constellation graph documents
"""

from setuptools import setup, find_packages
import os

# Read the README file
def read_readme():
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return "Branchable version tree for constellation graph documents"

# Read requirements
def read_requirements():
    req_path = os.path.join(os.path.dirname(__file__), 'requirements.txt')
    requirements = []
    if os.path.exists(req_path):
        with open(req_path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#'):
                    requirements.append(line)
    return requirements or ["blinker>=1.6"]

setup(
    name="constellation-timeline",
    version="0.1.0",
    description="Branchable version tree for constellation graph documents",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    license="MIT",

    packages=find_packages(where="src"),
    package_dir={"": "src"},

    python_requires=">=3.11",
    install_requires=read_requirements(),

    entry_points={
        "console_scripts": [
            "constellation-timeline=constellation.main:main",
        ],
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.11",
        "Topic :: Software Development :: Libraries",
    ],

    keywords="timeline version tree branching graph layout",

    include_package_data=True,
    package_data={
        "constellation": [
            "resources/config/*.json",
        ],
    },

    extras_require={
        "dev": [
            "pytest==8.4.1",
        ],
    },
)
