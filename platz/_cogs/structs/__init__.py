"""
The data structures of the library: credentials, pages, and their helpers.

All the functions here are purely data-manipulative and computational,
with the only exception of the credentials vault, which calls the login
routines provided to it from outside (but does not know what they do).
"""
