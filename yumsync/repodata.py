
__all__ = [ 'RepodataWriter' , 'BuildReport' , 'createrepo' ]

import os
import glob
import shutil
import tempfile

import createrepo_c

from yumsync import logger
from yumsync.rpm import read_package , RpmError


metadata_files = ( ( "primary" , createrepo_c.PrimaryXmlFile ) ,
                   ( "filelists" , createrepo_c.FilelistsXmlFile ) ,
                   ( "other" , createrepo_c.OtherXmlFile ) )


class RepodataWriter :
    """Writes yum metadata for a set of packages into a repodata directory.

Packages are added with write(), and metadata is only moved into its final
location when the writer is closed, replacing any previous content. When used
as a context manager, the writer is discarded if an exception is raised."""

    def __init__ ( self , path ) :
        self.path = path
        self.basedir = os.path.dirname( os.path.normpath(path) )
        if not os.path.isdir( path ) :
            os.makedirs( path )
        self.tempdir = tempfile.mkdtemp( prefix=".repodata-" , dir=self.basedir )
        self.packages = []
        self.revision = 0

    def __enter__ ( self ) :
        return self

    def __exit__ ( self , exc_type , exc_value , traceback ) :
        if exc_type is None :
            self.close()
        else :
            self.discard()

    def write ( self , filename ) :
        """Reads an rpm file below the repository base and queues it for the index.
Raises RpmError if the file is not a valid package"""

        location = os.path.relpath( filename , self.basedir )
        pkg = read_package( filename , location )
        self.revision = max( self.revision , pkg.time_file )
        self.packages.append( pkg )
        return pkg

    def discard ( self ) :
        if self.tempdir :
            shutil.rmtree( self.tempdir , ignore_errors=True )
            self.tempdir = None

    def close ( self ) :

        repomd = createrepo_c.Repomd()
        repomd.set_revision( str(self.revision) )

        for name , xmlclass in metadata_files :
            filename = os.path.join( self.tempdir , "%s.xml.gz" % name )
            xmlfile = xmlclass( filename )
            xmlfile.set_num_of_pkgs( len(self.packages) )
            for pkg in self.packages :
                xmlfile.add_pkg( pkg )
            xmlfile.close()

            record = createrepo_c.RepomdRecord( name , filename )
            record.fill( createrepo_c.SHA256 )
            # NOTE : timestamps follow the packages so output is identical across runs
            record.timestamp = self.revision
            record.rename_file()
            repomd.set_record( record )

        with open( os.path.join( self.tempdir , "repomd.xml" ) , 'w' ) as fd :
            fd.write( repomd.xml_dump() )

        olddir = self.path.rstrip( os.sep ) + ".old"
        if os.path.exists( olddir ) :
            shutil.rmtree( olddir )
        os.rename( self.path , olddir )
        os.rename( self.tempdir , self.path )
        shutil.rmtree( olddir )
        self.tempdir = None


class BuildReport :

    def __init__ ( self ) :
        self.packages = 0
        self.skipped = []

    def __repr__ ( self ) :
        return "<%s packages:%d skipped:%d>" % ( self.__class__.__name__ , self.packages , len(self.skipped) )


def createrepo ( path ) :
    """Regenerates repodata for the packages currently stored on a directory.
Files that cannot be read as packages are reported and left out of the metadata"""

    report = BuildReport()

    with RepodataWriter( os.path.join( path , "repodata" ) ) as writer :

        files = sorted( glob.glob( os.path.join( path , "*.rpm" ) ) )
        logger.info( "Inserting %d packages" % len(files) )

        for filename in files :
            try :
                writer.write( filename )
                report.packages += 1
            except ( RpmError , OSError ) as ex :
                logger.error( "Skipping %s from repodata : %s" % ( os.path.basename(filename) , ex ) )
                report.skipped.append( filename )

    return report
