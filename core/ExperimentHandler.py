import json
import logging
import os
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from utils.Timer import Timer

# loop counters copied into every data entry as '<loop name>.<counter>'
LOOP_PROPERTIES = ['this_rep_n', 'this_trial_n', 'this_n', 'this_index', 'ran', 'order']
SAVE_FORMATS = ['csv', 'json']


class ExperimentHandler:
    """
    ExperimentHandler keeps track of the loops of an experiment and of the data of every trial.

    Data are added one key/value pair at a time with add_data and grouped into one entry per
    trial by next_entry, which also records the counters and the conditions of the loops the
    trial belongs to. save writes all entries to a single file.

    Attributes:
        name (str): Name of the experiment, used in the data file name.
        extra_info (dict): Session information added to every entry, e.g. participant, session.
        logger (Logger): Session context providing the directory data are saved in.
        experiment_ended (bool): Set by the protocol when the experiment should stop.
    """

    def __init__(self, name='experiment', extra_info=None, logger=None):
        self.name = name
        self.extra_info = extra_info if extra_info is not None else dict()
        self.logger = logger
        self.experiment_ended = False

        self._loops = []
        self._unfinished_loops = []

        # keys in order of first appearance, finished entries and current entry
        self._trials_keys = []
        self._trials_data = []
        self._current_trial_data = dict()

    @property
    def entries(self) -> List[Dict[str, Any]]:
        return self._trials_data

    def is_entry_empty(self) -> bool:
        """True when no data have been added since the last call to next_entry"""
        return len(self._current_trial_data) == 0

    def add_loop(self, loop):
        """Add a loop, e.g. a TrialHandler, whose data are included in the entries"""
        self._loops.append(loop)
        self._unfinished_loops.append(loop)
        loop.experiment_handler = self

    def remove_loop(self, loop):
        """Remove a loop from the unfinished loops, e.g. when it has completed"""
        if loop in self._unfinished_loops:
            self._unfinished_loops.remove(loop)

    def add_data(self, key, value):
        """
        Add a key/value pair to the current entry.

        Pairs belong to the same entry until next_entry is called. Lists, tuples and
        arrays are stored as their JSON text.
        """
        if key not in self._trials_keys:
            self._trials_keys.append(key)
        if isinstance(value, np.ndarray):
            value = value.tolist()
        if isinstance(value, (list, tuple)):
            value = json.dumps(value)
        self._current_trial_data[key] = value

    def next_entry(self, snapshots=None):
        """
        Close the current entry, further calls to add_data go to the next one.

        Args:
            snapshots (Snapshot|list, optional): Snapshots of the loops the trial belongs to.
                Without snapshots, the current state of every unfinished loop is used.
        """
        if snapshots is None:
            loops = self._unfinished_loops
        elif isinstance(snapshots, (list, tuple)):
            loops = snapshots
        else:
            loops = [snapshots]

        for loop in loops:
            self._current_trial_data.update(self._get_loop_attributes(loop))
        self._current_trial_data.update(self.extra_info)

        self._trials_data.append(self._current_trial_data)
        logging.debug("Entry %d: %s", len(self._trials_data), self._current_trial_data)
        self._current_trial_data = dict()

    def save(self, attributes=None, save_format=None, path=None) -> str:
        """
        Save the entries of the experiment.

        Pending data are first closed into a final entry.

        Args:
            attributes (list, optional): Columns to save, defaults to every key seen.
            save_format (str, optional): 'csv' or 'json', defaults to the session
                configuration, else 'csv'.
            path (str, optional): Directory of the data file, defaults to the session
                source path, else the current directory.

        Returns:
            str: The path of the data file.
        """
        if not self.is_entry_empty():
            self.next_entry()

        config = self.logger.config if self.logger is not None else dict()
        save_format = (save_format or config.get('save_format', 'csv')).lower()
        if save_format not in SAVE_FORMATS:
            raise ValueError(f"Unknown save format {save_format}, should be one of {SAVE_FORMATS}")
        if path is None:
            path = self.logger.source_path if self.logger is not None else os.getcwd()
        os.makedirs(path, exist_ok=True)

        attributes = attributes or self._get_attributes()
        info = self.extra_info
        experiment_name = info.get('expName', self.name)
        participant = str(info.get('participant') or 'PARTICIPANT')
        session = str(info.get('session') or 'SESSION')
        date = info.get('date', Timer.date_str())
        filename = os.path.join(path, f"{participant}_{experiment_name}_{date}.{save_format}")

        if save_format == 'csv':
            data = pd.DataFrame(self._trials_data, columns=attributes)
            data.to_csv(filename, index=False)
        else:
            documents = [{'__experimentName': experiment_name,
                          '__participant': participant,
                          '__session': session,
                          '__datetime': date,
                          **{key: entry.get(key) for key in attributes}}
                         for entry in self._trials_data]
            with open(filename, 'w', encoding='utf-8') as f:
                json.dump(documents, f, indent=2, default=str)

        logging.info("Saved %d entries of %s to %s", len(self._trials_data), self.name, filename)
        return filename

    def _get_attributes(self) -> List[str]:
        """data keys, then loop attributes, then extra info, without duplicates"""
        attributes = list(self._trials_keys)
        for entry in self._trials_data:
            attributes += [key for key in entry if key not in attributes]
        return attributes

    @staticmethod
    def _get_loop_attributes(loop) -> Dict[str, Any]:
        """
        Get the counters and the current trial conditions of a loop or of a loop snapshot.

        Args:
            loop: A TrialHandler or a Snapshot of one.

        Returns:
            dict: '<loop name>.<counter>' for every loop counter, plus the fields of the
            current trial.
        """
        name = getattr(loop, 'name', 'loop')
        attributes = {f"{name}.{prop}": getattr(loop, prop)
                      for prop in LOOP_PROPERTIES if hasattr(loop, prop)}

        get_current_trial = getattr(loop, 'get_current_trial', None)
        current_trial = get_current_trial() if callable(get_current_trial) else None
        if isinstance(current_trial, dict):
            attributes.update(current_trial)
        return attributes
