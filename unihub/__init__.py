"""UniHub API - university club and event management backend."""
