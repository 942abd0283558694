# setup.py
from setuptools import setup, find_packages

setup(
    name="site_loader",
    version="0.1.0",
    description="Асинхронный загрузчик документов, разбитых на фрагменты по удалённым узлам",
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"site_loader.report": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "click>=8.1",
        "jinja2>=3.1",
        "pycryptodome>=3.19",
        "pydantic>=2.5",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": ["site-loader=site_loader.cli:cli"],
    },
    python_requires=">=3.11",
)
