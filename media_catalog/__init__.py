# media_catalog
# Description: Local catalog for movies, music and novels, plus the offline asset cache shell.
#
__version__ = "0.1.0"
