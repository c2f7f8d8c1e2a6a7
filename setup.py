from setuptools import find_packages, setup

setup(
    name="sftp-filedesk",
    version="0.1.0",
    description="Manage files on a remote SFTP server over one self-healing SSH session",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "paramiko>=3.0.0",
    ],
    entry_points={
        "console_scripts": [
            "sftp-filedesk=sftp_filedesk.__main__:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "dev": [
            "pytest",
            "build",
            "twine",
        ],
    },
)
