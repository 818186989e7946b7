"""
"""
