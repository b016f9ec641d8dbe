# didyouquit/models/__init__.py
