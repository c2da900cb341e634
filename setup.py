from setuptools import find_packages, setup

with open("README.md", encoding="utf-8") as fh:
    long_description = fh.read()

requirements = [
    "psutil>=5.9.0",
    "python-dotenv>=1.0.0",
    "rich>=13.0.0",
]

setup(
    name="disk-guard",
    version="0.1.0",
    author="diskguard maintainers",
    description="Disk-space guardian that reclaims space when a filesystem runs low",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["diskguard", "diskguard.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Systems Administration",
        "Topic :: System :: Filesystems",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "disk-cleanup=diskguard.cli:main",
        ],
    },
    include_package_data=True,
)
