from setuptools import setup, find_packages


setup(
    name="pbokit",
    version="0.1",
    packages=find_packages(include=["pbokit", "pbokit.*"]),
    description="Reader/writer for flat, uncompressed PBO archives with deterministic packing.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "pbokit=pbokit.cli:main",
        ]
    },
)
