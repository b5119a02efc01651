"""conecta.integrations — outbound HTTP gateway modules.

Client-side components talk to the Conecta REST API only through
``ConectaGateway``; never via bare ``requests`` calls.
"""
