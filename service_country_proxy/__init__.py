"""
Country data proxy service for the Country Stats Gateway.
"""
