"""
Repositories over the SQLite tables.

Pipeline services depend on the protocols in **interfaces.py**; the modules
next to it implement them with aiosqlite.
"""
