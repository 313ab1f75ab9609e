"""Wallhub: curated + user wallpaper content, merged browse/search and engagement counters."""
