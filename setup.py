from setuptools import setup, find_packages

# Read the README file for a long description.
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Read core requirements from requirements.txt
with open('requirements.txt') as f:
    install_requires = [line for line in f.read().splitlines() if line and not line.startswith('#')]

# Define development dependencies
extras_require = {
    'dev': [
        'pytest>=6.0',
        'flake8',
        'black',
        'mypy',
        'types-PyYAML',
        'types-toml',
        'setuptools',
        'wheel',
        'twine'
    ],
}

setup(
    name="configured",
    version="1.0.0",
    author="Clickism",
    description="Code-first configuration files: declare options in code, generate and load YAML, JSON, JSONC and TOML files.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/Clickism/configured",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    python_requires=">=3.8",
    install_requires=install_requires,
    extras_require=extras_require,
    include_package_data=True,
)
