import logging
import sys
import traceback

from core.Logger import Logger

ERROR = None
protocol = sys.argv[1] if len(sys.argv) > 1 else False
logger = Logger(protocol=protocol)

# # # # Run the protocol # # # # #
try:
    if logger.get_protocol():
        exec(open(logger.protocol_path, encoding='utf-8').read())
except Exception as e:
    logging.error("ERROR %s", traceback.format_exc())
    ERROR = e

# # # # # Exit # # # # #
logger.cleanup()
sys.exit(1 if ERROR is not None else 0)
