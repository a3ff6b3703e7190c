"""Infrastructure layer for migrate-transforms.

Settings, logging setup and the secure XML document resolver.
"""
