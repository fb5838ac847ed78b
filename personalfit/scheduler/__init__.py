"""Periodic batch jobs"""
