from setuptools import find_namespace_packages, setup

package_name = "robot_game"

setup(
    name="robot-game",
    version="1.0.0",
    packages=find_namespace_packages(include=[package_name, f"{package_name}.*"], exclude=[f"{package_name}.tests"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.29",
        "pydantic>=2.5",
        "aio-pika>=9.4",
    ],
    extras_require={
        "test": ["pytest>=8.0", "httpx>=0.27"],
    },
    zip_safe=True,
    maintainer="robot-game",
    maintainer_email="demo@example.com",
    description="Tile-grid robot puzzle engine with a host command/event bridge",
    license="Apache-2.0",
    entry_points={
        "console_scripts": [
            "robot_game = robot_game.main:run",
        ],
    },
)
