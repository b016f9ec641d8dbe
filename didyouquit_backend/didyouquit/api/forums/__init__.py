# didyouquit/api/forums/__init__.py
