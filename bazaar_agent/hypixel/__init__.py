"""Hypixel SkyBlock bazaar API client and models."""
