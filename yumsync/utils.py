
__all__ = [ 'ChecksumMismatch' , 'urljoin' , 'urlopen' , 'bytefmt' ,
            'hash_handle' , 'file_checksum' , 'integrity_check' , 'cksum_handles' ,
            'download_file' ]

from yumsync import logger

import os
import time
import hashlib

import urllib.parse
import urllib.request

urljoin = urllib.parse.urljoin


class ChecksumMismatch ( Exception ) :
    pass


# Names found on repomd/primary checksum nodes, mapped to hashlib names
cksum_handles = { 'md5':'md5' , 'md5sum':'md5' ,
                  'sha':'sha1' , 'sha1':'sha1' ,
                  'sha224':'sha224' , 'sha256':'sha256' ,
                  'sha384':'sha384' , 'sha512':'sha512' }

BLOCKSIZE = 64 * 1024


def bytefmt ( size ) :
    """Returns a human readable representation of a byte count"""
    size = float(size)
    for unit in ( "B" , "K" , "M" , "G" , "T" ) :
        if size < 1024 or unit == "T" :
            break
        size /= 1024
    if unit == "B" :
        return "%dB" % size
    return "%.1f%s" % ( size , unit )


def hash_handle ( cktype ) :
    """Returns a fresh hash object for a checksum type as named in yum metadata.
Raises ValueError for unknown types"""
    name = cksum_handles.get( str(cktype).lower() )
    if not name :
        raise ValueError( "Unsupported checksum type '%s'" % cktype )
    return hashlib.new( name )


def file_checksum ( filename , cktype , bsize=BLOCKSIZE ) :
    _hash = hash_handle( cktype )
    with open( filename , 'rb' ) as fd :
        data = fd.read(bsize)
        while data :
            _hash.update(data)
            data = fd.read(bsize)
    return _hash.hexdigest()


def integrity_check ( filename , size , checksum , cktype ) :
    """Checks size and checksum of the given file. Size is verified first, and
checksum is only computed when sizes match. Errors while reading the file or
computing the checksum are propagated to the caller."""

    name = os.path.basename(filename)

    if os.stat( filename ).st_size != int(size) :
        logger.debug( "Bad size on file '%s'" % name )
        return False

    if file_checksum( filename , cktype ) != checksum.lower() :
        logger.debug( "Bad %s checksum on file '%s'" % ( cktype , name ) )
        return False

    return True


def urlopen ( remote , timeout=None , headers=None ) :
    request = urllib.request.Request( remote , headers=headers or {} )
    if timeout :
        return urllib.request.urlopen( request , timeout=timeout )
    return urllib.request.urlopen( request )


def download ( remote , timeout=None ) :
    """Downloads a small remote file, like repomd.xml or a mirrorlist, into memory.
Returns the content as bytes. Errors are propagated"""
    with urlopen( remote , timeout ) as response :
        return response.read()


def _fetch ( job , timeout , resume ) :

    offset = 0
    if resume and os.path.isfile( job.filename ) :
        offset = os.stat( job.filename ).st_size
        if offset >= job.size :
            offset = 0

    _hash = hash_handle( job.checksum_type )
    headers = {}
    if offset :
        headers['Range'] = "bytes=%d-" % offset

    with urlopen( job.url , timeout , headers ) as response :

        mode = 'wb'
        if offset and getattr( response , 'status' , None ) == 206 :
            # NOTE : existing bytes must be hashed before the new ones arrive
            with open( job.filename , 'rb' ) as fd :
                data = fd.read(BLOCKSIZE)
                while data :
                    _hash.update(data)
                    data = fd.read(BLOCKSIZE)
            mode = 'ab'
            logger.debug( "Resuming %s at %s" % ( job.label , bytefmt(offset) ) )

        received = 0
        with open( job.filename , mode ) as fd :
            if mode == 'ab' :
                received = offset
            buffer = response.read(BLOCKSIZE)
            while buffer :
                received += len(buffer)
                if received > job.size :
                    raise ChecksumMismatch( "Received more than %s bytes" % job.size )
                _hash.update(buffer)
                fd.write(buffer)
                buffer = response.read(BLOCKSIZE)

    if received != job.size :
        raise ChecksumMismatch( "Size mismatch, expected %s and got %s" % ( job.size , received ) )

    digest = _hash.hexdigest()
    if digest != job.checksum.lower() :
        raise ChecksumMismatch( "Bad %s checksum, expected %s and got %s" % ( job.checksum_type , job.checksum , digest ) )


def download_file ( job , timeout=None , retries=0 ) :
    """Downloads the remote file described by a FetchJob into its destination.

Size and checksum are verified while data is streamed to disk. On failure the
partial file is removed and the last error is raised, after retrying the given
number of times. Only the first attempt resumes an incomplete file.

Returns the destination filename."""

    path = os.path.dirname( job.filename )
    if path and not os.path.isdir( path ) :
        os.makedirs( path , exist_ok=True )

    attempt = 0
    while True :
        try :
            _fetch( job , timeout , job.resume and attempt == 0 )
            return job.filename
        except Exception as ex :
            if os.path.isfile( job.filename ) :
                os.unlink( job.filename )
            if attempt >= retries :
                raise
            attempt += 1
            logger.warning( "Retrying %s (%d/%d) : %s" % ( job.label , attempt , retries , ex ) )
            time.sleep( min( 2 ** attempt , 30 ) )
