
__all__ = [ 'yum_repository' , 'SyncReport' ]

import os
import datetime

from yumsync import logger
from yumsync import utils
from yumsync.base import MirrorRepository
from yumsync.cache import RepoCache
from yumsync.gpg import KeyRing , verify_downloads
from yumsync.lists import scan_packages , download
from yumsync.lists.yum import reconcile , fetch_jobs
from yumsync.repodata import createrepo
from yumsync.rpm import labelcompare


class SyncReport :

    def __init__ ( self , name ) :
        self.name = name
        self.packages = 0
        self.found = 0
        self.scheduled = 0
        self.oversized = 0
        self.failed = 0
        self.rejected = 0
        self.removed = 0
        self.indexed = 0
        self.skipped = 0

    def __repr__ ( self ) :
        return "<%s %s found:%d scheduled:%d failed:%d rejected:%d>" % ( self.__class__.__name__ , self.name , self.found , self.scheduled , self.failed , self.rejected )


class yum_repository ( MirrorRepository ) :
    """Mirror of a single upstream yum repository into a flat package directory"""

    def __init__ ( self , config ) :
        MirrorRepository.__init__( self , config )
        self.arch = config.get( 'arch' , "" )
        self.include_sources = config.get( 'includesources' , False )
        self.mindate = config.get( 'mindate' )
        self.maxdate = config.get( 'maxdate' )
        self.newonly = config.get( 'newonly' , False )
        self.delete_removed = config.get( 'deleteremoved' , False )
        self.gpgcheck = config.get( 'gpgcheck' , False )
        self.gpgkey = config.get( 'gpgkey' , [] )
        self.cachedir = config.get( 'cachedir' ) or "/var/cache/yumsync"

    def match_filters ( self , pkg ) :
        if pkg.is_source() :
            if not self.include_sources :
                return False
        elif self.arch and pkg.arch not in ( self.arch , "noarch" ) :
            return False
        if self.mindate and pkg.time_build < _timestamp( self.mindate ) :
            return False
        if self.maxdate and pkg.time_build > _timestamp( self.maxdate ) :
            return False
        return True

    def filter_packages ( self , packages ) :
        """Applies repository filters to catalog entries, keeping upstream order"""

        selected = [ pkg for pkg in packages if self.match_filters( pkg ) ]

        if self.newonly :
            newest = {}
            for pkg in selected :
                key = ( pkg.name , pkg.arch )
                if key not in newest or labelcompare( _evr(pkg) , _evr(newest[key]) ) > 0 :
                    newest[key] = pkg
            latest = set( newest.values() )
            selected = [ pkg for pkg in selected if pkg in latest ]

        return selected

    def cache_local ( self , cachedir ) :
        """Caches repository metadata, updating it if the upstream has changed"""
        logger.debug( "Caching %s to %s" % ( self , cachedir ) )
        return RepoCache( self , cachedir ).update()

    def sync ( self , cachedir=None , client=None ) :
        """Synchronizes the local package directory with the upstream repository.

Packages already present and valid are kept, the rest are downloaded and
optionally verified, and repodata is rebuilt from whatever ends up on disk.
Only configuration and catalog errors are raised, everything else is
reported on the log and accounted on the returned SyncReport."""

        cachedir = cachedir or self.cachedir
        packagedir = self.repo_path()
        report = SyncReport( self.name )

        keyring = None
        if self.gpgcheck :
            keyring = KeyRing( self.gpgkey , self.timeout )

        try :
            repocache = self.cache_local( cachedir )

            self.build_local_tree()
            files = scan_packages( packagedir )

            logger.debug( "Loading package metadata from %s" % repocache )
            packages = self.filter_packages( repocache.packages() )
            report.packages = len(packages)
            logger.info( "Found %d packages for %s" % ( len(packages) , self ) )

            logger.debug( "Checking for existing packages in %s" % packagedir )
            result = reconcile( packages , files , packagedir )
            report.found = result.found
            report.oversized = len(result.oversized)
            report.scheduled = len(result.download)
            logger.info( "Scheduled %d packages for download (%s)" % ( len(result.download) , utils.bytefmt(result.download.weight) ) )

            jobs = fetch_jobs( result , self.base_url() , packagedir )
            if client is None :
                client = lambda job : utils.download_file( job , self.timeout , self.retries )

            downloads = verify_downloads( download( jobs , self.threads , client ) , keyring )
            report.failed = downloads.failed
            report.rejected = downloads.rejected

        finally :
            if keyring is not None :
                keyring.close()

        if self.delete_removed :
            report.removed = self.remove_unlisted( packages )

        built = createrepo( packagedir )
        report.indexed = built.packages
        report.skipped = len(built.skipped)

        logger.warning( "Synchronized %s : %d packages, %d found, %d scheduled, %d failed, %d rejected" % ( self , report.packages , report.found , report.scheduled , report.failed , report.rejected ) )
        return report

    def remove_unlisted ( self , packages ) :
        """Deletes packages on the local directory not listed on the catalog"""
        listed = set( pkg.filename for pkg in packages )
        removed = 0
        for localfile in scan_packages( self.repo_path() ) :
            if localfile.name.endswith( ".rpm" ) and localfile.name not in listed :
                logger.info( "Removing %s, not found upstream" % localfile.name )
                try :
                    os.unlink( os.path.join( self.repo_path() , localfile.name ) )
                    removed += 1
                except OSError as ex :
                    logger.error( "Error deleting %s : %s" % ( localfile.name , ex ) )
        return removed


def _evr ( pkg ) :
    return ( pkg.epoch , pkg.version , pkg.release )

def _timestamp ( date ) :
    if isinstance( date , datetime.datetime ) :
        return int( date.replace( tzinfo=datetime.timezone.utc ).timestamp() )
    return int( date )
