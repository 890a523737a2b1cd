from setuptools import setup, find_packages

setup(
    name="zkyc",
    version="0.1.0",
    description="Zero-knowledge KYC credentials over EcGFp5, Poseidon and Schnorr signatures",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "pyyaml",
        "cbor2",
    ],
    extras_require={
        "test": [
            "pytest",
            "galois",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.11",
)
