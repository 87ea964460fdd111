"""
Bazaar Agent: polls the Hypixel SkyBlock bazaar and stores changed snapshots.

Layers:
  hypixel/   — Upstream API client and data model
  agent/     — Change detection, projection, MongoDB sink and the poll loop
"""
