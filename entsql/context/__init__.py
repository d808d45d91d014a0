"""
Generation context: dialects, entity descriptions and id properties.
"""
