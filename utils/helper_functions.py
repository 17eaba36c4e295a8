import base64
import hashlib
import math
import re
from itertools import product

import numpy as np

# matches the content of each [..] group in a cell
SQUARE_BRACKETS = re.compile(r"\[(.*?)\]")


def factorize(cond):
    """Expand a dict of values into the full factorial list of conditions.

    Every value that is a list is treated as a factor; scalars are shared by all
    conditions. Nested lists are turned into tuples so that conditions stay hashable.
    """
    values = list(cond.values())
    for i in range(0, len(values)):
        if not isinstance(values[i], list):
            values[i] = [values[i]]

    conds = list(dict(zip(cond, x)) for x in product(*values))
    for cond in conds:
        for name, value in cond.items():
            if type(value) is list:
                cond[name] = tuple(value)
    return conds


def make_hash(cond):
    def make_hashable(cond):
        if isinstance(cond, (tuple, list)):
            return tuple((make_hashable(e) for e in cond))
        if isinstance(cond, dict):
            return tuple(sorted((k, make_hashable(v)) for k, v in cond.items()))
        if isinstance(cond, (set, frozenset)):
            return tuple(sorted(make_hashable(e) for e in cond))
        return cond

    hasher = hashlib.md5()
    hasher.update(repr(make_hashable(cond)).encode())

    return base64.b64encode(hasher.digest()).decode()


def make_seed(seed):
    """Turn a user supplied seed into something numpy.random.default_rng accepts.

    Non-negative integers (and None, meaning fresh OS entropy) are passed through.
    Any other value is reduced to the first 8 bytes of the MD5 digest of its str(),
    so that a string seed gives the same sequence on every platform.
    """
    if seed is None:
        return None
    if isinstance(seed, (int, np.integer)) and not isinstance(seed, bool) and seed >= 0:
        return int(seed)
    digest = hashlib.md5(str(seed).encode()).digest()
    return int.from_bytes(digest[:8], "little")


def shuffle(array, rng):
    """In-place Fisher-Yates shuffle of a mutable sequence driven by rng.

    Walks i from the last position down to 1 and swaps array[i] with
    array[j], j drawn uniformly from [0, i]. Returns the array.
    """
    for i in range(len(array) - 1, 0, -1):
        j = int(rng.integers(0, i + 1))
        array[i], array[j] = array[j], array[i]
    return array


def is_int(value):
    """True for integers and strings holding an integer ('3', '-2', ' 4 ')"""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, np.integer)):
        return True
    if isinstance(value, float):
        return value.is_integer()
    if isinstance(value, str):
        return re.fullmatch(r"\s*[-+]?\d+\s*", value) is not None
    return False


def to_number(value):
    """Convert a numeric string to int or float, return anything else unchanged"""
    if not isinstance(value, str):
        return value
    if is_int(value):
        return int(value)
    try:
        number = float(value)
    except ValueError:
        return value
    # 'nan' and 'inf' are words in a condition file, not numbers
    return number if math.isfinite(number) else value


def turn_square_brackets_into_arrays(text):
    """Return the elements of the first [..] group of a string, or None.

    '[1, 2]' gives ['1', '2'] and '[]' gives []. Elements are separated by commas
    and/or spaces. Non strings and strings without brackets give None.
    """
    if not isinstance(text, str):
        return None
    matches = SQUARE_BRACKETS.findall(text)
    if not matches:
        return None
    return [element for element in re.split(r"[, ]+", matches[0]) if element]


def slice_array(array, start=None, stop=None, step=None):
    """Slice array[start:stop], reversed when step is negative, then keep every |step| element"""
    array_slice = list(array[start:stop])
    if step is None:
        return array_slice
    if step == 0:
        raise ValueError("slice step cannot be zero")
    if step < 0:
        array_slice.reverse()
    return array_slice[::abs(step)]


def select_from_array(array, selection):
    """Select entries of array and return them as a list.

    selection can be:
        an integer or integer string: that single entry (negative counts from the end)
        a list/tuple of integers: the entries at those positions, in array order
        a string with commas: the concatenation of each comma separated selection,
            e.g. '-5:-2, 9, 11:5:22'
        a string with colons: a 'start:stop' or 'start:step:stop' slice, e.g. '5:' or '1:2:5'
    """
    array = list(array)
    if is_int(selection):
        index = int(selection)
        if not -len(array) <= index < len(array):
            raise IndexError(f"selection index {index} out of range for {len(array)} entries")
        return [array[index]]
    elif isinstance(selection, (list, tuple, np.ndarray)):
        positions = set()
        for i in selection:
            index = int(i)
            if not -len(array) <= index < len(array):
                raise IndexError(f"selection index {index} out of range for {len(array)} entries")
            positions.add(index + len(array) if index < 0 else index)
        return [entry for i, entry in enumerate(array) if i in positions]
    elif isinstance(selection, str):
        if ',' in selection:
            selected = []
            for part in selection.split(','):
                selected += select_from_array(array, part.strip())
            return selected
        elif ':' in selection:
            params = [int(param) if param.strip() else None for param in selection.split(':')]
            if len(params) == 3:
                return slice_array(array, params[0], params[2], params[1])
            elif len(params) == 2:
                return slice_array(array, *params)
        raise ValueError(f"cannot parse selection: {selection!r}")
    raise TypeError(f"unknown selection type: {type(selection).__name__}")
