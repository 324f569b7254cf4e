"""
Configuration Layer.

Settings are loaded from the environment and an optional .env file via
Pydantic Settings; logging setup lives alongside them.
"""
