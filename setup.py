from setuptools import find_packages, setup

setup(
    name="vframes-client",
    version="0.1.0",
    license="Apache License 2.0",

    python_requires=">=3.12",
    description="Async client and CLI for the video frame-extraction platform: "
                "sessions with token refresh, uploads and job tracking.",

    packages=find_packages(exclude=("tests", "tests.*")),

    install_requires=[
        "httpx>=0.27,<1.0",
        "pydantic>=2.7,<3.0",
        "pydantic-settings>=2.3,<3.0",
        "structlog>=24.1",
        "python-json-logger>=3.1,<4.0",
        "prometheus-client>=0.20,<1.0",
        "cachetools>=5.3,<7.0",
        "Click>=8.1,<9.0",
        "rich>=13.7",
    ],

    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },

    test_suite="tests",

    classifiers=[
        'Development Status :: 3 - Alpha',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.12',
    ],
    entry_points={
        'console_scripts': [
            'vframes = vframes_client.cli:root',
        ],
    },
)
