import sys

from codecs import open
from os import path
from setuptools import setup, find_namespace_packages

__author__ = "Sean Robertson"
__email__ = "sdrobert@cs.toronto.edu"
__license__ = "Apache 2.0"
__copyright__ = "Copyright 2023 Sean Robertson"

if sys.version_info[:2] < (3, 8):
    raise RuntimeError("Python version >= 3.8 required.")

PWD = path.abspath(path.dirname(__file__))
with open(path.join(PWD, "README.md"), encoding="utf-8") as readme_file:
    LONG_DESCRIPTION = readme_file.read()

if __name__ == "__main__":
    setup(
        name="pydrobert-feats",
        version="0.1.0",
        description="Kaldi-compatible acoustic features with few dependencies",
        long_description=LONG_DESCRIPTION,
        long_description_content_type="text/markdown",
        zip_safe=False,
        url="https://github.com/sdrobert/pydrobert-feats",
        author=__author__,
        author_email=__email__,
        license=__license__,
        package_dir={"": "src"},
        packages=find_namespace_packages(where="src", include=["pydrobert.*"]),
        python_requires=">=3.8",
        classifiers=[
            "Development Status :: 3 - Alpha",
            "License :: OSI Approved :: Apache Software License",
            "Programming Language :: Python",
            "Programming Language :: Python :: 3",
        ],
        install_requires=["numpy", "typing_extensions"],
        extras_require={
            "scipy": ["scipy"],
            "test": ["pytest", "scipy"],
        },
        entry_points={
            "console_scripts": [
                "print-feat-config = pydrobert.feats.command_line:print_feat_config",
            ]
        },
    )
