from setuptools import setup, find_namespace_packages

setup(
    name="bgdeploy",
    version="0.1.0",
    packages=find_namespace_packages(include=["bgdeploy", "bgdeploy.*"], exclude=["bgdeploy.tests"]),
    py_modules=["cli"],
    install_requires=[
        "boto3",
        "botocore",
    ],
    extras_require={
        "test": [
            "pytest",
            "moto>=5",
        ],
    },
    entry_points={
        'console_scripts': [
            'bgdeploy=cli:main',
        ],
    },
    description="Blue-green publisher for AWS Lambda archives",
    python_requires='>=3.8',
)
