# didyouquit/services/__init__.py
