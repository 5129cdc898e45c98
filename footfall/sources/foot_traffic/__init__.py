"""
Foot Traffic source module.

Venue directory and visit statistics providers used by the area analysis
engine.

Data Sources:
- Foursquare Places: venue search (all plans) and per-venue visit
  statistics (premium; 403 without entitlement)

Modules:
- client: rate-limited HTTP clients and payload parsing
- metadata: category keywords, multiplier tables and policy constants
"""
