"""
DDNS Relay - An IP echo and DDNS update service.

This package answers "what is my public IP?" over HTTP and keeps a named
DNS record pointed at the caller's IP, writing to the DNS provider only
when the record actually changes.
"""

__version__ = "0.1.0"
__author__ = "DDNS Relay Contributors"
