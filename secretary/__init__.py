"""secretary - inject secrets into a command as files and rotate them live."""

__version__ = "0.1.0"
__author__ = "secretary maintainers"
