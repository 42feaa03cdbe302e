from prefixfs.objectstore.gateway import GatewayError, ObjectStoreGateway

__all__ = ["GatewayError", "ObjectStoreGateway"]
