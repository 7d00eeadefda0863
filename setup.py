# setup.py
from setuptools import setup, find_packages

setup(
    name="forkjob",
    version="0.1.0",
    description="Batch jobs fanned out to forked worker processes",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.8",
    install_requires=[
        "requests",
        "setproctitle",
        "tqdm",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
