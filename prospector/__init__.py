"""
Prospector
Assistente de prospeccao comercial para atacado alimenticio
"""

__version__ = "1.0.0"
