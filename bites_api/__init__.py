"""Kasi Bites ordering backend"""
