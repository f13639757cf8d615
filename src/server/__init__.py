"""
HTTP surface for the subtitling pipeline.
"""
