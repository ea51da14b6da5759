
"""
Yumsync lists submodule

Defines the package containers used during a sync and the download pool.

PackageList

A python list of catalog entries accounting for the size of the included
packages. Used to hold the partitions produced by reconciliation.


FetchJob and FetchOutcome

A FetchJob describes a single file to download, with its destination and the
expected size and checksum, so verification is done while the file is being
transferred. Every job produces exactly one FetchOutcome, holding the final
filename on success or the error that caused the failure.


DownloadThread

Worker thread pulling jobs from a shared queue and pushing outcomes into
another one. Threads share nothing else, as every job writes into a distinct
file. The download() generator starts a fixed number of them and yields
outcomes in completion order, so callers must not assume any ordering.

"""

__all__ = [ "LocalFile" , "scan_packages" , "PackageList" , "FetchJob" , "FetchOutcome" ,
            "DownloadThread" , "download" , "DOWNLOAD_THREADS" ]

import os
import queue
import threading
import collections
import urllib.parse

from yumsync import logger
from yumsync import utils


DOWNLOAD_THREADS = 4


LocalFile = collections.namedtuple( "LocalFile" , ( "name" , "size" ) )

def scan_packages ( path ) :
    """Lists regular files currently stored on a package directory"""
    files = []
    with os.scandir( path ) as entries :
        for entry in entries :
            if entry.is_file() :
                files.append( LocalFile( entry.name , entry.stat().st_size ) )
    return files


class PackageList ( list ) :

    weight = 0

    def __repr__ ( self ) :
        return "<%s pkgs:%d %s>" % ( self.__class__.__name__ , len(self) , utils.bytefmt(self.weight) )

    def append ( self , item ) :
        self.weight += int( item.size )
        list.append( self , item )

    def extend ( self , itemlist ) :
        for item in itemlist :
            self.append( item )


class FetchJob :

    def __init__ ( self , url , filename , size , checksum , checksum_type , label , resume=False ) :
        self.url = url
        self.filename = filename
        self.size = int(size)
        self.checksum = checksum
        self.checksum_type = checksum_type
        self.label = label
        self.resume = resume

    def __repr__ ( self ) :
        return "<%s %s>" % ( self.__class__.__name__ , self.label )

    def validate ( self ) :
        """Raises ValueError if the job cannot be dispatched"""
        if not self.url or not urllib.parse.urlsplit( self.url ).scheme :
            raise ValueError( "Bad url '%s'" % self.url )
        if not self.filename :
            raise ValueError( "No destination file" )
        utils.hash_handle( self.checksum_type )
        bytes.fromhex( self.checksum )


class FetchOutcome :

    def __init__ ( self , job , filename=None , error=None ) :
        self.job = job
        self.filename = filename
        self.error = error

    def __bool__ ( self ) :
        return self.error is None

    def __repr__ ( self ) :
        if self.error :
            return "<%s %s failed : %s>" % ( self.__class__.__name__ , self.job.label , self.error )
        return "<%s %s>" % ( self.__class__.__name__ , self.filename )


class DownloadThread ( threading.Thread ) :
    """File download thread. Takes jobs from the input queue until a None
is found, and reports one outcome per job on the output queue"""

    def __init__ ( self , jobs , outcomes , client ) :
        threading.Thread.__init__( self , daemon=True )
        self.jobs = jobs
        self.outcomes = outcomes
        self.client = client

    def run ( self ) :
        while True :
            job = self.jobs.get()
            if job is None :
                break
            try :
                filename = self.client( job )
                self.outcomes.put( FetchOutcome( job , filename or job.filename ) )
            except Exception as ex :
                self.outcomes.put( FetchOutcome( job , error=ex ) )


def download ( jobs , threads=DOWNLOAD_THREADS , client=None ) :
    """Downloads the given jobs using a pool of worker threads.

This is a generator, yielding a FetchOutcome for every job as soon as it is
available. Jobs that cannot be dispatched are reported first, without taking
a worker. The client is a callable receiving a job and returning the final
filename, raising on any failure. utils.download_file is used if none given."""

    if client is None :
        client = utils.download_file

    pending = queue.Queue()
    outcomes = queue.Queue()

    scheduled = 0
    for job in jobs :
        try :
            job.validate()
        except ValueError as ex :
            yield FetchOutcome( job , error=ex )
            continue
        pending.put( job )
        scheduled += 1

    if not scheduled :
        return

    workers = []
    for i in range( max( 1 , min( int(threads) , scheduled ) ) ) :
        worker = DownloadThread( pending , outcomes , client )
        pending.put( None )
        workers.append( worker )

    logger.info( "Starting download of %d files with %d threads" % ( scheduled , len(workers) ) )
    for worker in workers :
        worker.start()

    for i in range(scheduled) :
        yield outcomes.get()

    for worker in workers :
        worker.join()
