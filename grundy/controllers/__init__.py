# Controllers package for Grundy
# Directory watching, shortcut reconciliation and the main event loop.
