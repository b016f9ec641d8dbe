# didyouquit/api/users/__init__.py
