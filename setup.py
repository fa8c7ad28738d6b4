from setuptools import setup, find_packages
from os import path
import re

package_name="tf2dnn"
root_dir = path.abspath(path.dirname(__file__))

with open("README.md") as f:
    long_description = f.read()

with open(path.join(root_dir, package_name, '__init__.py')) as f:
    init_text = f.read()
    version = re.search(r'__version__\s*=\s*[\'\"](.+?)[\'\"]', init_text).group(1)

setup(
    name=package_name,
    version=version,
    description=\
        "Imports frozen TensorFlow graphs (NHWC) into an NCHW inference-engine layer graph "+
        "with canonicalized layer parameters and weight blobs in target memory layout.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT License",
    packages=find_packages(exclude=["tests", "tests.*"]),
    platforms=["linux", "unix"],
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "tensorflow",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            "tf2dnn=tf2dnn:main"
        ]
    }
)
