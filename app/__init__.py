"""
Dicesoku - Application Package
Command-line front end.
"""
