"""Configuration, logging, storage handle and exceptions."""
