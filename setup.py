"""Setup configuration for SensorGuard."""

from setuptools import find_packages, setup

setup(
    name="sensorguard",
    version="0.1.0",
    description="Sensor network guardian — streaming malicious-node scoring with explainable states",
    author="SensorGuard",
    python_requires=">=3.11",
    packages=find_packages(where="src", include=["sensorguard*"]),
    package_dir={"": "src"},
    install_requires=[
        "httpx>=0.27.0",
        "numpy>=1.26.0",
        "onnxruntime>=1.17.0",
        "pandas>=2.2.0",
        "pydantic>=2.6.0",
        "pydantic-settings>=2.1.0",
    ],
    entry_points={
        "console_scripts": [
            "sensorguard=sensorguard.cli:cli_entry",
        ],
    },
    extras_require={
        "dev": [
            "pytest>=8.0.0",
            "pytest-asyncio>=0.23.0",
            "pytest-mock>=3.12.0",
            "respx>=0.21.0",
        ],
    },
)
