"""User administration and consultant assignment"""
