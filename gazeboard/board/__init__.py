"""Menus, items, the default layout and the actions items perform."""
