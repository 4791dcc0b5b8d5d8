from tether.transport.http import HttpTransport

__all__ = ["HttpTransport"]
