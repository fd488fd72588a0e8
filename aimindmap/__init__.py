from .server import AIMindMapServer
