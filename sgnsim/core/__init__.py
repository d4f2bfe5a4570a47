"""
Essential functionality shared by all parts of sgnsim: exceptions and the
preference system.
"""
