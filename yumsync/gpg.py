
__all__ = [ 'SignatureError' , 'KeyRing' , 'DownloadReport' , 'verify_downloads' ]

import os
import shutil
import tempfile

import gnupg

from yumsync import logger
from yumsync import utils
from yumsync.rpm import RpmSignature , RpmError , header_only_tags


class SignatureError ( Exception ) :
    pass


def read_key ( location , timeout=None ) :
    if location.startswith( "file://" ) :
        location = location[7:]
    elif "://" in location :
        return utils.download( location , timeout )
    with open( location , 'rb' ) as fd :
        return fd.read()


class KeyRing :
    """Set of trusted keys, imported into a private GnuPG home directory
that lives as long as the object. Keys can be given as local paths, file://
or http urls."""

    def __init__ ( self , keys , timeout=None ) :
        if isinstance( keys , str ) :
            keys = keys.split()
        self.homedir = tempfile.mkdtemp( prefix="yumsync-gpg-" )
        try :
            self.gpg = gnupg.GPG( gnupghome=self.homedir )
            imported = 0
            for location in keys :
                result = self.gpg.import_keys( read_key( location , timeout ) )
                if not result.count :
                    logger.warning( "No key imported from %s" % location )
                imported += result.count
        except Exception :
            self.close()
            raise
        if not imported :
            self.close()
            raise SignatureError( "No valid GPG keys found in %s" % " ".join(keys) )

    def __enter__ ( self ) :
        return self

    def __exit__ ( self , *exc ) :
        self.close()

    def close ( self ) :
        if self.homedir :
            shutil.rmtree( self.homedir , ignore_errors=True )
            self.homedir = None

    def check_package ( self , fd ) :
        """Verifies the signature of an open RPM file. Raises SignatureError or
RpmError when the package cannot be trusted.

Signed data is copied next to the keys, so packages signed over header and
payload are streamed to disk rather than read into memory."""

        sig = RpmSignature( fd )
        signature = sig.signature_tag()
        if not signature :
            raise SignatureError( "Package is not signed" )
        tag , sigdata = signature

        ( sigfd , sigfile ) = tempfile.mkstemp( dir=self.homedir , suffix=".sig" )
        ( datafd , datafile ) = tempfile.mkstemp( dir=self.homedir )
        try :
            with os.fdopen( sigfd , 'wb' ) as output :
                output.write( sigdata )
            fd.seek( sig.header_start )
            with os.fdopen( datafd , 'wb' ) as output :
                if tag in header_only_tags :
                    size = sig.header_end - sig.header_start
                    data = fd.read( size )
                    if len(data) != size :
                        raise RpmError( "Truncated main header" )
                    output.write( data )
                else :
                    shutil.copyfileobj( fd , output )
            with open( sigfile , 'rb' ) as sigstream :
                verified = self.gpg.verify_file( sigstream , datafile )
        finally :
            os.unlink( sigfile )
            os.unlink( datafile )

        if not verified :
            raise SignatureError( verified.status or "Bad signature" )
        return verified


class DownloadReport :

    def __init__ ( self ) :
        self.downloaded = 0
        self.failed = 0
        self.rejected = 0

    def __repr__ ( self ) :
        return "<%s downloaded:%d failed:%d rejected:%d>" % ( self.__class__.__name__ , self.downloaded , self.failed , self.rejected )


def verify_downloads ( outcomes , keyring=None ) :
    """Consumes download outcomes as they are produced, checking signatures
of downloaded packages when a keyring is given. Packages failing the check
are removed from disk. Errors are reported and never raised, so a single bad
package does not stop the processing of the rest."""

    report = DownloadReport()

    for outcome in outcomes :

        if outcome.error :
            logger.error( "Error downloading %s : %s" % ( outcome.job.label , outcome.error ) )
            report.failed += 1
            continue

        report.downloaded += 1

        if keyring is None :
            continue

        # TODO : gpg checks could run on a second worker pool
        try :
            with open( outcome.filename , 'rb' ) as fd :
                keyring.check_package( fd )
            continue
        except ( SignatureError , RpmError , OSError ) as ex :
            logger.error( "GPG check validation failed for %s : %s" % ( outcome.job.label , ex ) )

        report.rejected += 1
        try :
            os.unlink( outcome.filename )
        except OSError as ex :
            logger.error( "Error deleting %s : %s" % ( outcome.job.label , ex ) )

    return report
