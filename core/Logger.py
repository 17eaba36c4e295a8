"""
This module defines the Logger class, the session context a protocol runs in.

It reads the local configuration (local_conf.json), sets up the python logging,
resolves the protocol file to run, prepares the directory data are saved in and
provides the resource manager conditions are imported through.
"""
import json
import logging
import os
import pathlib
import pprint
import socket
from typing import Any, Dict, Optional, Union

from core.ResourceManager import ResourceManager
from utils.logging import setup_logging
from utils.Timer import Timer

REPO_PATH = pathlib.Path(__file__).parent.parent.absolute()
CONF_PATH = os.path.join(str(REPO_PATH), "conf")

VERSION = "0.1"


def read_config(conf_path: str = "local_conf.json") -> Dict[str, Any]:
    """
    Read the local configuration file.

    Args:
        conf_path (str): Path of the json configuration file.

    Returns:
        dict: The configuration.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        json.JSONDecodeError: If the configuration file is not valid JSON.
    """
    try:
        with open(conf_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        logging.error("Configuration file '%s' not found.", conf_path)
        raise
    except json.JSONDecodeError:
        logging.error("Configuration file '%s' is not a valid JSON.", conf_path)
        raise


class Logger:
    """
    Logger class holding the context of an experimental session.

    Attributes:
        DEFAULT_SOURCE_PATH (str): Default path where data are saved locally.
        config (dict): The local configuration.
        setup (str): The hostname of the machine running the experiment.
        protocol_path (str): Path to the protocol file.
        manual_run (bool): Flag indicating if a protocol was given on the command line.
        source_path (str): Path where data are saved.
        resource_manager (ResourceManager): Provides the condition resources.
        logger_timer (Timer): Session clock started when the logger is created.
    """
    DEFAULT_SOURCE_PATH = os.path.join(os.path.expanduser("~"), "PyTrials_Files/")

    def __init__(self, protocol: Union[str, bool, None] = False, conf_path: str = "local_conf.json"):
        self.config = read_config(conf_path)
        self.setup = socket.gethostname()
        self.protocol_path = protocol

        # if the protocol path is defined we consider that it runs manually
        self.manual_run = bool(self.protocol_path)

        # source path is the local path that data and logs are saved
        self.source_path = self._set_path_from_local_conf("source_path", self.DEFAULT_SOURCE_PATH)
        log_file = self.config.get("log_file", os.path.join(self.source_path, "log.txt"))
        setup_logging(self.manual_run, self.config.get("log_level", "INFO"), log_file)

        self.resource_manager = ResourceManager(self.config.get("resource_path", CONF_PATH))
        self.logger_timer = Timer()
        logging.info("Logger %s started on %s with configuration:\n%s",
                     VERSION, self.setup, pprint.pformat(self.config))

    @property
    def protocol_path(self) -> Optional[str]:
        """
        Get the protocol path.

        Returns:
            str: The protocol path.
        """
        return self._protocol_path

    @protocol_path.setter
    def protocol_path(self, protocol_path: Union[str, bool, None]):
        """
        Set the protocol path.
        if protocol_path has only filename set the protocol_path at the conf directory.

        Args:
            protocol_path (str): The protocol path.
        """
        if protocol_path:
            path, filename = os.path.split(protocol_path)
            if not path:
                protocol_path = os.path.join(CONF_PATH, filename)
        else:
            protocol_path = None
        self._protocol_path = protocol_path

    def get_protocol(self) -> bool:
        """
        Check that the protocol file exists.

        Returns:
            bool: True if the protocol file exists.

        Raises:
            FileNotFoundError: If there is no protocol or the file does not exist.
        """
        if not self.protocol_path or not os.path.isfile(self.protocol_path):
            error_msg = f"Protocol file does not exist at {self.protocol_path}"
            logging.error(error_msg)
            raise FileNotFoundError(error_msg)
        logging.info("Protocol path: %s", self.protocol_path)
        return True

    def _set_path_from_local_conf(self, path_key: str, default_path: str = None) -> str:
        """
        Get the path from the local_conf or create a new directory at the default path.

        Args:
            path_key (str): The key to look up in the configuration.
            default_path (str): The path to use if the key is not in the configuration.

        Returns:
            str: The path from the configuration or the default path.
        """
        path = os.path.expanduser(self.config.get(path_key, default_path))
        os.makedirs(path, exist_ok=True)
        return path

    def log(self, event: str, data: Optional[Dict[str, Any]] = None) -> int:
        """
        Log an experiment event with the time elapsed since the session started.

        Args:
            event (str): The name of the event, e.g. 'Trial'.
            data (dict, optional): Information about the event.

        Returns:
            int: The elapsed time in milliseconds.
        """
        tmst = self.logger_timer.elapsed_time()
        data = data or {}  # if data is None or False use an empty dictionary
        logging.info("%s at %d ms: %s", event, tmst, data)
        return tmst

    def cleanup(self):
        """release the cached resources and flush the log handlers"""
        self.resource_manager.clear()
        for handler in logging.getLogger("").handlers:
            handler.flush()
        logging.info("Session ended after %d ms", self.logger_timer.elapsed_time())
