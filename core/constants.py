# Общие константы и команды HP 8902A / HP 8673B, как в исходнике
DEFAULT_BACKENDS = ["", "@py"]   # сперва системный VISA (NI GPIB), затем pyvisa-py
FAKE_BACKEND = "FAKE"
READ_TERM = "\n"
WRITE_TERM = "\n"
TIMEOUT_MS = 2000
SRQ_TIMEOUT_S = 60.0

GPIB_BOARD = 0
GPIB_RESOURCE = "GPIB{board}::{address}::INSTR"
ADDRESS_MIN = 1
ADDRESS_MAX = 30
DEFAULT_METER_ADDRESS = 14    # HP 8902A
DEFAULT_SOURCE_ADDRESS = 19   # HP 8673B

# --- HP 8902A ---
CMD_PROBE           = "IP"        # instrument preset
CMD_CLEAR_STATUS    = "*CLS"
CMD_RF_POWER_FREE   = "M4T0"      # RF power, trigger off
CMD_ZERO            = "ZR"
CMD_SRQ_ARM         = "22.3SP"    # SRQ on data ready
CMD_SRQ_CLEAR       = "22.0SP"
CMD_CAL_SOURCE_ON   = "C1"
CMD_CAL_SOURCE_OFF  = "C0"
CMD_SAVE_CAL        = "SC"
CMD_LO_DISABLE      = "27.3SP0MZ"
CMD_LO_SET          = "27.3SP{mhz}MZ"
CMD_OFFSET_TABLE    = "27.1SP"
CMD_TABLE_CLEAR     = "37.9SP"
CMD_TABLE_ENTRY     = "37.3SP{mhz}MZ{factor}CF"

# --- HP 8673B ---
CMD_SRC_REFERENCE   = "FR3GZLE-70DM"
CMD_SRC_FREQ        = "FR{ghz}GZ"
CMD_SRC_LEVEL_LO    = "LE8DM"

# --- планировщик частоты, ГГц ---
FREQ_MIN_GHZ = 0.00015
FREQ_MAX_GHZ = 18.0
LO_BYPASS_MAX_GHZ = 1.3
LO_MIN_GHZ = 2.0
LO_INCREMENTS_GHZ = (0.12053, 0.24053, 0.48053, 0.60053, 0.68053)
REFERENCE_FREQ_GHZ = 3.0
REFERENCE_LEVEL_DBM = -70.0
LO_LEVEL_DBM = 8.0

# --- таблица калибровочных коэффициентов ---
CAL_TABLE_FILE = "CalFactors92A.json"
# HP 11792A: (ГГц, коэффициент)
DEFAULT_CAL_TABLE = (
    (0.05, 100.0),
    (2.0, 96.3),
    (3.0, 94.8),
    (4.0, 93.9),
    (5.0, 92.9),
    (6.0, 91.9),
    (7.0, 91.1),
    (8.0, 90.3),
    (9.0, 89.3),
    (10.0, 88.5),
    (11.0, 87.5),
    (12.4, 87.0),
    (13.0, 86.1),
    (14.0, 85.6),
    (15.0, 85.4),
    (16.0, 84.9),
    (17.0, 84.6),
    (18.0, 84.1),
)

DEFAULT_LOGLEVEL = "INFO"
LOG_PATH = "~/.hp8902/hp8902.log"
