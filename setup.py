from setuptools import setup, find_packages

setup(
    name="wbb-efficiency-ratings",
    version="0.1.0",
    description="Season-to-date efficiency ratings for women's college basketball from NCAA box scores",
    packages=find_packages(include=["wbb_ratings", "wbb_ratings.*"]),
    install_requires=[
        "pandas>=1.5.3",
        "requests>=2.31.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "wbb-ratings=wbb_ratings.main:main",
        ],
    },
)
