"""
Configuration for devicectl: environment settings and device.conf targets.
"""
