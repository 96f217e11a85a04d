from setuptools import setup, find_packages

with open("README.md", "r") as fh:
    long_description = fh.read()

__version__ = "0.1.0"

setup(
    name="gpkgprovider",
    version=__version__,
    author="gpkgprovider contributors",
    description="GeoPackage feature provider for vector tile serving (uses shapely, pyproj and geopandas)",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "setuptools",
        "numpy",
        "pandas",
        "geopandas",
        "shapely>=2.0",
        "pyproj",
        "pydantic>=2",
        "pydantic-settings>=2",
    ],
    extras_require={
        "test": ["pytest"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: GNU General Public License v3.0",
        "Operating System :: OS Independent",
    ],
    zip_safe=False
)
