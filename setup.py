import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="avs-operator",
    version="0.0.1",
    description="Operator that registers with a delegation manager and answers on-chain tasks",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(include=["avs_operator", "avs_operator.*"]),
    install_requires=[
        "web3>=7.0,<8",
        "eth-account>=0.13",
        "eth-utils>=4.0",
        "cryptography>=41.0",
        "requests>=2.31",
        "PyYAML>=6.0",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
)
