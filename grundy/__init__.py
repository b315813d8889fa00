# Grundy package
# Keeps Steam non-Steam shortcuts in sync with directories of games.

__version__ = "0.1.0"

NAME = "grundy"
DESCRIPTION = (
    "Grundy crushes your games into Steam shortcuts so you do not have to! "
    "Please refer to the usage documentation at "
    "https://github.com/stephen-fox/grundy for more information."
)
