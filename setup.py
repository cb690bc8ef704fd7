#!/usr/bin/env python3
"""
Setup script for DNS Zone Pipeline package.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="dns-zone-pipeline",
    version="1.0.0",
    author="DNS Zone Pipeline Team",
    author_email="team@example.com",
    description="Plan/apply orchestration for DNS zones managed with Terraform and Cloudflare",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/example/dns-zone-pipeline",
    packages=find_packages(exclude=["features", "features.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Internet :: Name Service (DNS)",
        "Topic :: System :: Systems Administration",
    ],
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={
        "test": ["behave>=1.2.6"],
    },
    entry_points={
        "console_scripts": [
            "dns-pipeline=dns_zone_pipeline.cli.main:main",
        ],
    },
    include_package_data=True,
    package_data={
        "dns_zone_pipeline": ["*.yaml", "*.yml"],
    },
)
