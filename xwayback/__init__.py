"""
xwayback: X.Org compatibility launcher for Wayback
Starts wayback-compositor and Xwayland and bridges them at startup
"""

__version__ = "0.3.0"
__author__ = "xwayback contributors"

PROJECT_URL = "https://wayback.freedesktop.org/"
BUG_URL = "https://gitlab.freedesktop.org/wayback/wayback/-/issues"
