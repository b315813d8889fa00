# Services package for Grundy
# Adapters for external systems: Steam user data and the OS service manager.
