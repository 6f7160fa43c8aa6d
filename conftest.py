# Keeps pytest from importing the packaging script as a test module
collect_ignore = ["setup.py"]
