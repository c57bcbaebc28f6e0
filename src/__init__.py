"""
E-Commerce Insights Report
"""
