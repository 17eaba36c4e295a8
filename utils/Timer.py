import time
from datetime import datetime


class Timer:
    """ Session clock, elapsed time is in milliseconds """

    def __init__(self):
        self.start_time = 0
        self.time = time.monotonic
        self.start()

    def start(self):
        self.start_time = self.time()

    def elapsed_time(self):
        return int((self.time() - self.start_time) * 1000)

    @staticmethod
    def date_str(fmt="%Y-%m-%d_%Hh%M.%S.%f"):
        """wall clock date used to name data files, milliseconds resolution"""
        date = datetime.now().strftime(fmt)
        return date[:-3] if fmt.endswith("%f") else date
