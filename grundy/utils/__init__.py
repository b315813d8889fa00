# Utils package for Grundy
# Leaf helpers shared by the settings, services and controllers packages.

from .paths import FILE_EXTENSION, IMAGE_FILE_SUFFIXES, default_settings_dir
from .steam_user import SteamTopology, discover_topology
from .launch_options import compose_launch_options, quote, quote_if_needed
