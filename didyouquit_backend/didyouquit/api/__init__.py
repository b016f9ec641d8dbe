# didyouquit/api/__init__.py
