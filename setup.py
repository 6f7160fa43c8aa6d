from setuptools import setup

with open("README.md") as f:
    readme = f.read()

_ = setup(
    name="atlinks",
    version="1.0.0",
    license="MIT",
    long_description=readme,
    long_description_content_type="text/markdown",
    install_requires=[
        "impacket~=0.12.0",
        "ldap3~=2.9.1",
        "dnspython~=2.7.0",
        "argcomplete~=3.5.0",
        "tabulate~=0.9.0",
        "pyperclip~=1.9.0",
    ],
    extras_require={
        "test": [
            "pytest~=8.3.0",
            "beautifulsoup4~=4.12.0",
        ],
    },
    packages=[
        "atlinks",
        "atlinks.commands",
        "atlinks.commands.parsers",
        "atlinks.lib",
    ],
    entry_points={
        "console_scripts": ["atlinks=atlinks.entry:main"],
    },
    description="Active Roles Access Template Link reporting",
)
