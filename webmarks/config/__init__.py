"""
Configuration for Webmarks (Pydantic models loaded from TOML or JSON).
"""
