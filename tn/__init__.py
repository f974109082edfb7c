"""
tn - command-line client for tn-shim.
"""
