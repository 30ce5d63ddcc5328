"""Line-oriented transports the STLI engine can run over."""

from .base import LineTransport, TransportError
from .socket_connection import SocketConnection
