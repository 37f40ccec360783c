"""
In-process scheduling of reinvest passes.
"""
