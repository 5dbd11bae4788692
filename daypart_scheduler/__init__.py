"""
Daypart scheduling and override-resolution engine for retail signage.
"""
