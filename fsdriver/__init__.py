from fsdriver.filesystem import Filesystem
from fsdriver.local import LocalFilesystem
from fsdriver.jobs import Job, JobHost
from fsdriver.servers import ServerModel, ServersRepository
from fsdriver.utils.entry import FileType, FSEntry, FSPermissions, FSTree
from fsdriver.utils.errors import (
    AlreadyExistsError,
    DirectoryExpectedError,
    EncryptedArchiveError,
    FSError,
    InvalidArchiveError,
    IOFailureError,
    NotFoundError,
    OutOfMemoryError,
    SplitArchiveError,
    UnsupportedArchiveError,
)
from fsdriver.utils.properties import FSProperties
from fsdriver.utils.result import Result, capture
from fsdriver.utils.sorter import SortMode, get_comparator, sort_entries
from fsdriver.utils.text import LineBreak, TextParams
