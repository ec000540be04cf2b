"""
Setup script for the exercise PDF service.

Allows development installation with `pip install -e .[test]`
"""

from setuptools import setup, find_packages

setup(
    name="exercise-pdf-service",
    version="1.0.0",
    description="Exercise plan PDF rendering service backed by pooled Playwright browsers",
    packages=find_packages(include=["exercise_pdf_service", "exercise_pdf_service.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn[standard]>=0.29",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "playwright>=1.40",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "httpx>=0.25",
        ],
        "scripts": [
            "httpx>=0.25",
        ],
    },
    entry_points={
        "console_scripts": [
            "exercise-pdf-service=exercise_pdf_service.__main__:main",
        ],
    },
)
