"""
Webmarks: curate folders of a Chromium bookmark tree into flat, colored lists.
"""

__version__ = "1.0.0"
