"""
AssetDrop - Services
"""
