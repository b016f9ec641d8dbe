# didyouquit/core/__init__.py
