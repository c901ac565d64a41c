"""
Prospector - Configuracao
"""
