"""
Leave Management Backend
"""
