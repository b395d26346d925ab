from setuptools import setup, find_packages

setup(
    name="paired_diff",
    version="0.1.0",
    description="Per-feature post-minus-pre change analysis for paired measurement datasets",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pandas>=2.2",
        "numpy>=1.26",
        "scipy>=1.13",
        "statsmodels>=0.14",
        "pyyaml>=6.0"
    ],
    extras_require={
        "test": ["pytest>=7.0"]
    },
    entry_points={
        "console_scripts": [
            "paired_diff=paired_diff.cli:main"
        ]
    },
    include_package_data=True
)
