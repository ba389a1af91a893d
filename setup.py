from setuptools import find_packages, setup

setup(
    name="waypost",
    version="0.1.0",
    description="In-process request dispatch with exact/parameterized routing and a priority-ordered hook bus",
    packages=find_packages(include=["waypost", "waypost.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2",
        "PyYAML>=6",
        "fastapi>=0.100",
    ],
    extras_require={
        "serve": ["uvicorn>=0.23"],
        "test": ["pytest>=7", "httpx>=0.24"],
    },
    entry_points={"console_scripts": ["waypost=waypost.cli:main"]},
)
