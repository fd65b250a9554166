"""
Event bus and the handlers that connect the pipeline stages.
"""
