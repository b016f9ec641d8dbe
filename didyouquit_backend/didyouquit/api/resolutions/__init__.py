# didyouquit/api/resolutions/__init__.py
