# Offline_Cache/manifest.py
# Description: Assets cached by the shell at install time.
#
from typing import Iterable, List

DEFAULT_ASSET_MANIFEST: List[str] = [
    "./",
    "./index.html",
    "./movie.html",
    "./music.html",
    "./novel.html",
    "./profile.html",
    "./add-media.html",
    "./styles.css",
    "./app.js",
    "./database.js",
    "./manifest.json",
    "./icon-192.png",
    "./icon-512.png",
    "https://cdnjs.cloudflare.com/ajax/libs/font-awesome/6.4.0/css/all.min.css",
    "https://fonts.googleapis.com/css2?family=Poppins:wght@300;400;500;600;700&display=swap",
]


def build_manifest(extra_assets: Iterable[str] = ()) -> List[str]:
    """Default manifest plus *extra_assets*, without duplicates, order kept."""
    manifest = list(DEFAULT_ASSET_MANIFEST)
    for asset in extra_assets:
        if asset not in manifest:
            manifest.append(asset)
    return manifest
