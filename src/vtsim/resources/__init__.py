"""Shared primitives: Resource, Container and Store."""

from vtsim.resources.base import BaseResource, Get, Put
from vtsim.resources.resource import Release, Request, Resource
from vtsim.resources.container import Container, ContainerGet, ContainerPut
from vtsim.resources.store import Store, StoreGet, StorePut

__all__ = [
    "BaseResource",
    "Get",
    "Put",
    # Resource
    "Release",
    "Request",
    "Resource",
    # Container
    "Container",
    "ContainerGet",
    "ContainerPut",
    # Store
    "Store",
    "StoreGet",
    "StorePut",
]
