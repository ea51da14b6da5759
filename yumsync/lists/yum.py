
__all__ = [ "PackageEntry" , "Reconciliation" , "reconcile" , "fetch_jobs" ,
            "VALID" , "CORRUPT" , "TOO_LARGE" , "INCOMPLETE" , "MISSING" ]

import os
import collections

from yumsync import logger
from yumsync import utils
from yumsync.lists import PackageList , FetchJob


VALID = "valid"
CORRUPT = "corrupt"
TOO_LARGE = "toolarge"
INCOMPLETE = "incomplete"
MISSING = "missing"


_entry_fields = ( "name" , "epoch" , "version" , "release" , "arch" ,
                  "location" , "size" , "checksum" , "checksum_type" ,
                  "time_file" , "time_build" , "sourcerpm" )

class PackageEntry ( collections.namedtuple( "PackageEntry" , _entry_fields ) ) :
    """Package as declared in upstream primary metadata"""

    __slots__ = ()

    def __str__ ( self ) :
        return self.label

    @property
    def label ( self ) :
        epoch = ""
        if self.epoch and str(self.epoch) != "0" :
            epoch = "%s:" % self.epoch
        return "%s-%s%s-%s.%s" % ( self.name , epoch , self.version , self.release , self.arch )

    @property
    def filename ( self ) :
        return os.path.basename( self.location )

    def is_source ( self ) :
        return self.arch in ( "src" , "nosrc" )

PackageEntry.__new__.__defaults__ = ( 0 , 0 , "" )


class Reconciliation :
    """Verdicts for every catalog entry compared against local files.
Entries to download are kept in catalog order"""

    def __init__ ( self ) :
        self.dispositions = {}
        self.download = PackageList()
        self.keep = PackageList()
        self.oversized = []
        self.found = 0
        self.missing = 0

    def __repr__ ( self ) :
        return "<%s found:%d missing:%d download:%r oversized:%d>" % ( self.__class__.__name__ , self.found , self.missing , self.download , len(self.oversized) )

    def add ( self , entry , disposition ) :
        self.dispositions[entry] = disposition
        if disposition == VALID :
            self.found += 1
            self.keep.append( entry )
        elif disposition == TOO_LARGE :
            self.oversized.append( entry )
        else :
            if disposition == MISSING :
                self.missing += 1
            self.download.append( entry )


def check_entry ( entry , localfile , path ) :

    if localfile is None :
        return MISSING

    if localfile.size > entry.size :
        logger.error( "Existing file is larger (%s) than expected (%s) for package %s" % ( utils.bytefmt(localfile.size) , utils.bytefmt(entry.size) , entry ) )
        return TOO_LARGE

    if localfile.size < entry.size :
        logger.debug( "Existing file is incomplete for package %s" % entry )
        return INCOMPLETE

    try :
        if utils.file_checksum( path , entry.checksum_type ) != entry.checksum.lower() :
            logger.error( "Existing file failed checksum validation for package %s" % entry )
            return CORRUPT
    except ( OSError , ValueError ) as ex :
        logger.error( "Error validating checksum for package %s : %s" % ( entry , ex ) )
        return CORRUPT

    return VALID


def reconcile ( entries , localfiles , path ) :
    """Decides which catalog entries are already valid on the package directory
and which ones must be downloaded. Only reads from disk."""

    localnames = dict( ( f.name , f ) for f in localfiles )

    result = Reconciliation()
    seen = set()

    for entry in entries :
        filename = entry.filename
        if filename in seen :
            logger.warning( "Skipping %s, file %s already listed by another package" % ( entry , filename ) )
            continue
        seen.add( filename )
        disposition = check_entry( entry , localnames.get( filename ) , os.path.join( path , filename ) )
        result.add( entry , disposition )

    return result


def fetch_jobs ( result , base_url , path ) :
    """Builds the download jobs for the entries pending on a reconciliation"""

    jobs = []
    total = len(result.download)
    for i , entry in enumerate( result.download ) :
        try :
            url = utils.urljoin( base_url , entry.location )
        except ValueError as ex :
            logger.error( "Error requesting package %s : %s" % ( entry , ex ) )
            url = None
        label = "[ %d / %d ] %s" % ( i + 1 , total , entry )
        resume = result.dispositions[entry] == INCOMPLETE
        jobs.append( FetchJob( url , os.path.join( path , entry.filename ) , entry.size ,
                               entry.checksum , entry.checksum_type , label , resume ) )
    return jobs
