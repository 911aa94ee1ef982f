"""Staff desk application.

Pure financial derivation and permission resolution services, a thin
client for the clinic REST API, and the JSON endpoints the staff pages
call.
"""
