
import logging

console = logging.StreamHandler()
formatter = logging.Formatter("%(levelname)s : %(message)s")
console.setFormatter(formatter)

logger = logging.getLogger( "yumsync" )
logger.addHandler( console )


from yumsync.utils import *
from yumsync.rpm import *
from yumsync.gpg import *
from yumsync.lists import *
from yumsync.lists.yum import *
from yumsync.repodata import *
from yumsync.cache import *
from yumsync.base import *
from yumsync.yum import *


__version__ = "1.0"
