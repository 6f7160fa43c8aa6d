version = "?"

try:
    from importlib.metadata import PackageNotFoundError
    from importlib.metadata import version as get_version

    version = get_version("atlinks")
except PackageNotFoundError:
    print(
        "Cannot determine atlinks version. "
        'If running from source you should at least run "pip install -e ."'
    )

BANNER = "atlinks v{} - Active Roles Access Template Link reporting\n".format(version)
