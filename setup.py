from setuptools import setup, find_packages

setup(
    name="alea",
    version="0.1",
    packages=find_packages(include=["alea", "alea.*"]),
    python_requires=">=3.9",
    install_requires=[
        # Web Framework
        "fastapi>=0.109.2",
        "uvicorn[standard]>=0.27.1",
        "python-jose[cryptography]>=3.3.0",
        "passlib>=1.7.4",
        "pydantic>=2.6.0",

        # Database
        "sqlalchemy>=2.0.27",

        # AI
        "openai>=1.12.0",

        # Utilities
        "python-dotenv>=1.0.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
            "httpx>=0.26.0",
        ],
    },
)
