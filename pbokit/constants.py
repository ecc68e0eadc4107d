# Header packing methods
PACKING_STORED = 0
PACKING_HEADER_EXT = 0x56657273  # "sreV" read little endian

CHECKSUM_SIZE = 20
CHECKSUM_PAD = b"\x00"

# Size fields are u32 on disk
MAX_ENTRY_SIZE = 0xFFFFFFFF

# Special relative names handled by the directory packer
PREFIX_FILE = "$PBOPREFIX$"
CONFIG_SOURCE = "config.cpp"
CONFIG_BINARY = "config.bin"

META_PREFIX = "prefix"

# Extensions skipped by the content hash; these formats carry their own
# integrity markers.
CONTENT_HASH_SKIP_EXTS = frozenset(
    {
        "paa",
        "jpg",
        "p3d",
        "tga",
        "rvmat",
        "lip",
        "ogg",
        "wss",
        "png",
        "rtm",
        "pac",
        "fxy",
        "wrp",
    }
)
CONTENT_HASH_EMPTY = b"nothing"

# inspect table layout
INSPECT_NAME_WIDTH = 50
INSPECT_NUM_WIDTH = 9
