# setup.py
from setuptools import setup, find_packages

install_requires = [
    # --- STORAGE ---
    "duckdb>=0.10.0",

    # --- CONFIG & MODELS ---
    "pydantic>=2.0.0",
    "python-dotenv>=1.0.0",
    "pyyaml>=6.0.0",

    # --- BACKEND TRANSPORT ---
    "httpx>=0.27.0",
]

setup(
    name="depot-session-gate",
    version="0.3.0",
    description="Depot|Session layer: corruption-tolerant local state, backend bridge and navigation gate",
    packages=find_packages(include=["depot", "depot.*"]),
    include_package_data=True,
    package_data={"depot": ["shared/config/settings/*.yaml"]},
    install_requires=install_requires,
    extras_require={
        # --- TESTS ---
        "test": [
            "pytest",
            "pytest-asyncio>=1.3.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "depot-session=depot.app.main:main",
        ],
    },
    python_requires=">=3.11",
)
