"""
chuk-mcp-ocean: Ocean Field Reconstruction & Contour MCP Server

Loads ocean station samples (temperature, salinity, oxygen, pH), interpolates
continuous fields with inverse distance weighting, traces contour lines with
marching squares, clips them against the coastline, and serves the results
from a precomputed cache.
"""
