"""
This module defines the TrialHandler class, which imports and sequences the conditions of an
experiment.

A TrialHandler turns a list of conditions, a number of repetitions and an ordering method into
the full sequence of trials at construction time. Trials are then pulled one at a time with
advance() (or by iterating over the handler) while the handler keeps track of the current
repetition, the trial number within the repetition and the overall trial number. Snapshots of
these counters can be taken at any point for the loop-control logic of the protocol.
"""
import io
import logging
import weakref
from dataclasses import dataclass
from dataclasses import field as datafield
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pandas as pd

from utils.errors import InvalidConditionTableError, ResourceImportError, UnknownOrderingPolicyError
from utils.helper_functions import (make_seed, select_from_array, shuffle, to_number,
                                    turn_square_brackets_into_arrays)

SUPPORTED_EXTENSIONS = ('csv', 'xlsx', 'xls', 'ods')


class Method(Enum):
    """Ordering of the conditions across repetitions"""
    SEQUENTIAL = 'sequential'   # conditions in the order they are given, every repetition
    RANDOM = 'random'           # conditions shuffled within each repetition
    FULL_RANDOM = 'fullRandom'  # all repetitions x conditions shuffled together

    @classmethod
    def _missing_(cls, value):
        # accept the value or the member name in any case, e.g. 'FULL_RANDOM' or 'fullrandom'
        if isinstance(value, str):
            for member in cls:
                if value.lower() in (member.value.lower(), member.name.lower()):
                    return member
        return None


def _read_sheet(data: bytes, extension: str) -> pd.DataFrame:
    """Read the first worksheet as text, header row first, blank rows dropped"""
    if extension == 'csv':
        sheet = pd.read_csv(io.BytesIO(data), dtype=str, keep_default_na=False,
                            encoding='utf-8-sig', skip_blank_lines=True)
    else:
        sheet = pd.read_excel(io.BytesIO(data), sheet_name=0, dtype=str, keep_default_na=False)
    if not sheet.empty:
        blank = sheet.apply(lambda column: column.map(_is_blank))
        sheet = sheet[~blank.all(axis=1)]
    return sheet


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    return bool(pd.isna(value))


def _coerce_value(value):
    """empty cell -> None, '[1, 2]' -> [1, 2], numeric string -> int/float"""
    if _is_blank(value):
        return None
    array = turn_square_brackets_into_arrays(value)
    if array is not None:
        return [to_number(element) for element in array]
    return to_number(value)


def import_conditions(resource_manager, resource_name: str, selection=None) -> List[Dict[str, Any]]:
    """
    Import a list of conditions from a .csv, .xlsx, .xls or .ods resource.

    The resource should contain one row per type of trial and one column per parameter
    that defines the trial type. The first row gives the parameter names. Only the first
    worksheet of a spreadsheet is considered.

    Args:
        resource_manager (ResourceManager): Provides the content of the resource.
        resource_name (str): The name of the resource containing the conditions.
        selection (int|str|list, optional): Subset of the condition rows to keep,
            e.g. 5, [1, 2, 3, 10], '1,5,10', '1:2:5', '5:' or '-5:-2, 9, 11:5:22'.

    Returns:
        list: The conditions, one dict per row mapping field names to values.

    Raises:
        ResourceImportError: If the resource could not be read, parsed or selected from.
    """
    try:
        extension = resource_name.rsplit('.', 1)[-1].lower() if '.' in resource_name else ''
        if extension not in SUPPORTED_EXTENSIONS:
            raise ValueError(f"extension: {extension} currently not supported")

        sheet = _read_sheet(resource_manager.get_resource(resource_name), extension)
        fields = [str(column) for column in sheet.columns]
        rows = sheet.values.tolist()
        if selection is not None:
            rows = select_from_array(rows, selection)

        return [{name: _coerce_value(value) for name, value in zip(fields, row)} for row in rows]
    except Exception as error:
        logging.error("Failed to import conditions from %s: %s", resource_name, error)
        raise ResourceImportError('TrialHandler.import_conditions',
                                  f'when importing condition: {resource_name}', error) from error


@dataclass
class Snapshot:
    """
    Point-in-time copy of the counters of a TrialHandler.

    The counters are frozen when the snapshot is taken. The finished flag is updated by the
    handler when its loop ends, and the trial accessors always read the handler's current
    trial list.
    """
    name: str
    n_stim: int
    n_total: int
    n_remaining: int
    this_rep_n: int
    this_trial_n: int
    this_n: int
    this_index: int
    ran: int
    order: int
    finished: bool = False
    handler: Optional[weakref.ref] = datafield(default=None, repr=False, compare=False)

    def _handler(self):
        return self.handler() if self.handler is not None else None

    def get_current_trial(self):
        """the trial that was current when the snapshot was taken"""
        handler = self._handler()
        return None if handler is None else handler.get_trial(self.this_index)

    def get_trial(self, index=0):
        handler = self._handler()
        return None if handler is None else handler.get_trial(index)


class TrialHandler:
    """
    TrialHandler imports and sequences the conditions of an experiment.

    The trial list is prepared and the whole sequence of trials is generated when the
    handler is created, so that a seeded handler always produces the same sequence.

    Attributes:
        trial_list (list): The conditions, one dict per condition.
        n_reps (int): Number of repetitions of the trial list.
        method (Method): The ordering method.
        seed (int|str|None): Seed of the random number generator, None for a random seed.
        extra_info (dict): Additional information stored alongside the trial data.
        name (str): Name of the loop, used as prefix of the loop attributes in the data.
        auto_log (bool): Log each new trial.
        n_stim (int): Number of conditions.
        n_total (int): Total number of trials, n_reps * n_stim.
        n_remaining (int): Number of trials not produced yet.
        this_rep_n (int): Current repetition.
        this_trial_n (int): Current trial number within the current repetition.
        this_n (int): Number of the current trial over the whole run, -1 before the first trial.
        this_index (int): Index of the current trial in the trial list.
        this_trial (dict): The current trial, None before the first and after the last trial.
        exhausted (bool): All trials of the sequence have been produced.
        experiment_handler (ExperimentHandler): Receives the data added with add_data.
    """

    import_conditions = staticmethod(import_conditions)

    def __init__(self, trial_list=None, n_reps=1, method=Method.RANDOM, extra_info=None, seed=None,
                 name='trials', auto_log=True, resource_manager=None, selection=None):
        if isinstance(n_reps, bool) or not isinstance(n_reps, (int, np.integer)) or n_reps < 0:
            raise ValueError(f"n_reps should be a non-negative integer, got {n_reps!r}")

        self.n_reps = int(n_reps)
        self.method = method
        self.extra_info = extra_info if extra_info is not None else dict()
        self.seed = seed
        self.name = name
        self.auto_log = auto_log
        self.resource_manager = resource_manager
        self.experiment_handler = None

        self.trial_list = self._prepare_trial_list(trial_list, selection)

        # number of conditions and of trials
        self.n_stim = len(self.trial_list)
        self.n_total = self.n_reps * self.n_stim
        self.n_remaining = self.n_total

        # cursor, all counters before the first trial
        self.this_rep_n = 0
        self.this_trial_n = -1
        self.this_n = -1
        self.this_index = 0
        self.this_trial = None
        self.ran = 0
        self.order = -1
        self.exhausted = False

        self._finished = False
        self._snapshots = []

        self._trial_sequence = self._prepare_sequence()

    def __iter__(self):
        while True:
            trial = self.advance()
            if trial is None:
                return
            yield trial

    def advance(self):
        """
        Move to the next trial of the sequence.

        Returns:
            dict|None: The next trial, or None once all n_total trials have been produced.
        """
        if self.exhausted:
            return None

        self.this_trial_n += 1
        # start a new repetition
        if self.this_trial_n == self.n_stim:
            self.this_trial_n = 0
            self.this_rep_n += 1

        if self.this_rep_n >= self.n_reps:
            self.exhausted = True
            self.this_trial = None
            logging.debug("%s: all %d trials done", self.name, self.n_total)
            return None

        self.this_n += 1
        self.n_remaining -= 1
        self.this_index = int(self._trial_sequence[self.this_rep_n, self.this_trial_n])
        self.this_trial = self.trial_list[self.this_index]
        self.ran = 1
        self.order = self.this_n
        if self.auto_log:
            logging.info("New trial (rep=%i, index=%i): %s",
                         self.this_rep_n, self.this_trial_n, self.this_trial)
        return self.this_trial

    def for_each(self, callback: Callable[[Any], Any]) -> None:
        """call callback with every remaining trial"""
        for trial in self:
            callback(trial)

    @property
    def n_completed(self):
        return self.this_n + 1

    @property
    def finished(self):
        return self._finished

    @finished.setter
    def finished(self, is_finished):
        """Set whether the loop is finished and pass it on to every snapshot taken so far"""
        self._finished = is_finished
        for snapshot in self._snapshots:
            snapshot.finished = is_finished

    def get_snapshot(self) -> Snapshot:
        """
        Get a snapshot of the current state of the handler, e.g. when a loop iteration begins.

        The snapshot is kept by the handler so that setting finished later reaches it.

        Returns:
            Snapshot: The counters of the handler at this point.
        """
        snapshot = Snapshot(name=self.name,
                            n_stim=self.n_stim,
                            n_total=self.n_total,
                            n_remaining=self.n_remaining,
                            this_rep_n=self.this_rep_n,
                            this_trial_n=self.this_trial_n,
                            this_n=self.this_n,
                            this_index=self.this_index,
                            ran=self.ran,
                            order=self.order,
                            finished=self._finished,
                            handler=weakref.ref(self))
        self._snapshots.append(snapshot)
        return snapshot

    take_snapshot = get_snapshot

    def get_trial_index(self):
        return self.this_index

    def set_trial_index(self, index):
        self.this_index = index

    def get_attributes(self) -> List[str]:
        """names of the trial fields, taken from the first trial only"""
        first_trial = self.trial_list[0]
        if not first_trial:
            return []
        return list(first_trial.keys())

    def get_current_trial(self):
        if not self.ran or self.exhausted:
            return None
        return self.get_trial(self.this_index)

    def get_trial(self, index=0):
        """the trial at position index of the trial list, None outside of the list"""
        if index < 0 or index >= self.n_stim:
            return None
        return self.trial_list[index]

    def get_future_trial(self, n=1):
        """
        Get the trial n positions after the current one in the trial list, without advancing.

        Args:
            n (int): Offset from the current trial, negative values look back.

        Returns:
            dict|None: The trial, or None if the offset goes beyond the trial list
            or beyond the remaining number of trials.
        """
        index = self.this_index + n
        if index < 0 or n > self.n_remaining or index >= self.n_stim:
            return None
        return self.trial_list[index]

    def get_earlier_trial(self, n=-1):
        """the nth previous trial, useful for comparisons in n-back tasks"""
        return self.get_future_trial(-abs(n))

    def get_sequence(self) -> np.ndarray:
        """copy of the n_reps x n_stim matrix of trial list indices"""
        return self._trial_sequence.copy()

    def add_data(self, key, value):
        """Add a key/value pair to the current trial data held by the experiment handler"""
        if self.experiment_handler is not None:
            self.experiment_handler.add_data(key, value)

    def _prepare_trial_list(self, trial_list, selection=None):
        # no conditions is a single condition without fields
        if trial_list is None:
            return [dict()]

        if isinstance(trial_list, (list, tuple)):
            return list(trial_list) if len(trial_list) else [dict()]

        # a string is the name of a condition resource
        if isinstance(trial_list, str):
            if self.resource_manager is None:
                logging.error("No resource manager to import %s from", trial_list)
                raise ResourceImportError('TrialHandler._prepare_trial_list',
                                          f'when importing condition: {trial_list}',
                                          'no resource manager available')
            conditions = import_conditions(self.resource_manager, trial_list, selection)
            return conditions if conditions else [dict()]

        logging.error("Unable to prepare trial list of type %s", type(trial_list).__name__)
        raise InvalidConditionTableError('TrialHandler._prepare_trial_list',
                                         'when preparing the trial list',
                                         f'unable to prepare trial list: unknown type: '
                                         f'{type(trial_list).__name__}')

    def _prepare_sequence(self):
        """
        Prepare the sequence of trials.

        The sequence is a matrix of trial list indices with n_reps rows and n_stim columns.
        With 3 conditions and 5 repetitions the 15 trials come, e.g., in the order:
            sequential:  0, 1, 2, 0, 1, 2, 0, 1, 2, 0, 1, 2, 0, 1, 2
            random:      2, 1, 0, 0, 2, 1, 0, 1, 2, 0, 1, 2, 1, 2, 0
            fullRandom:  2, 0, 0, 1, 0, 2, 1, 2, 0, 1, 1, 1, 2, 0, 2
        Random orders are Fisher-Yates shuffles drawn from a PCG64 generator seeded with seed.
        """
        try:
            self.method = Method(self.method)
        except (ValueError, TypeError) as error:
            logging.error("Unknown trial method %r", self.method)
            raise UnknownOrderingPolicyError('TrialHandler._prepare_sequence',
                                             'when preparing a sequence of trials',
                                             f'unknown method: {self.method!r}') from error

        self._rng = np.random.default_rng(make_seed(self.seed))
        indices = np.arange(self.n_stim)

        if self.method is Method.SEQUENTIAL:
            sequence = np.tile(indices, (self.n_reps, 1))
        elif self.method is Method.RANDOM:
            sequence = np.array([shuffle(indices.copy(), self._rng) for _ in range(self.n_reps)],
                                dtype=int).reshape(self.n_reps, self.n_stim)
        else:
            # shuffle all repetitions together, a repetition may hold a condition twice
            flat_sequence = shuffle(np.tile(indices, self.n_reps), self._rng)
            sequence = flat_sequence.reshape(self.n_reps, self.n_stim)

        logging.debug("%s: %s sequence of %d x %d trials (seed=%s)\n%s", self.name,
                      self.method.value, self.n_reps, self.n_stim, self.seed, sequence)
        return sequence
