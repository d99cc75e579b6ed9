from setuptools import setup, find_packages

setup(
    name="udp-balancer",
    version="0.1.0",
    description="Round robin UDP relay with GELF chunk affinity",
    author="udp-balancer contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "matplotlib",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "udp-balancer=udpbalancer.cli:main",
        ],
    },
    include_package_data=True,
    python_requires=">=3.11",
)
