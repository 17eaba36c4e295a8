import logging
import os
from enum import Enum


class ResourceStatus(Enum):
    NOT_REGISTERED = 'NOT_REGISTERED'
    REGISTERED = 'REGISTERED'
    DOWNLOADED = 'DOWNLOADED'


class ResourceManager:
    """Registry of the files a protocol reads, e.g. condition spreadsheets.

    Resources are referred to by name. A name can be registered with an explicit
    path, otherwise it is resolved against resource_path. The content of a
    resource is read once and then served from memory.
    """

    def __init__(self, resource_path='.'):
        self.resource_path = resource_path
        self._resources = dict()

    def register(self, name, path=None):
        """register a resource name, path defaults to the name inside resource_path"""
        path = path or os.path.join(self.resource_path, name)
        self._resources[name] = dict(path=path, data=None)
        logging.debug("Registered resource %s at %s", name, path)

    def get_resource(self, name):
        """
        Get the content of a resource.

        Unregistered names are registered on the fly against resource_path.

        Args:
            name (str): The name of the resource.

        Returns:
            bytes: The content of the resource.

        Raises:
            FileNotFoundError: If the resource file does not exist.
        """
        if name not in self._resources:
            self.register(name)
        resource = self._resources[name]
        if resource['data'] is None:
            if not os.path.isfile(resource['path']):
                raise FileNotFoundError(f"Resource {name} not found at {resource['path']}")
            with open(resource['path'], 'rb') as f:
                resource['data'] = f.read()
            logging.info("Loaded resource %s (%d bytes)", name, len(resource['data']))
        return resource['data']

    def status(self, name):
        if name not in self._resources:
            return ResourceStatus.NOT_REGISTERED
        if self._resources[name]['data'] is None:
            return ResourceStatus.REGISTERED
        return ResourceStatus.DOWNLOADED

    def clear(self):
        self._resources.clear()
