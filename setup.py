"""Setup script for Forensic Analyst"""

from setuptools import find_packages, setup

with open("requirements.txt") as f:
    requirements = [
        line.strip() for line in f if line.strip() and not line.startswith("#")
    ]

setup(
    name="forensic-analyst-mcp",
    version="1.0.0",
    description="MCP server for neural forensics of LLM transcripts (DSMMD taxonomy)",
    packages=find_packages(exclude=["tests*"]),
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "dev": ["pytest", "pytest-asyncio", "pytest-mock", "black", "isort", "mypy"],
        "test": ["pytest", "pytest-asyncio", "pytest-mock"],
    },
    entry_points={
        "console_scripts": [
            "forensic-analyst=forensic_core.cli:main",
            "forensic-analyst-mcp=mcp_server.server:main",
        ],
    },
)
