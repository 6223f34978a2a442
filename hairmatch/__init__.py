"""
hairmatch: face-shape classification from 68-point landmarks and
hairstyle recommendations.
"""

__version__ = "0.1.0"
