
__all__ = [ 'CatalogError' , 'RepoCache' ]

import os
import io
import bz2
import gzip
import lzma
import xml.sax

from yumsync import logger
from yumsync import utils
from yumsync.lists import FetchJob
from yumsync.lists.yum_xml import xml_repomd , xml_package_list


class CatalogError ( Exception ) :
    pass


# Open handlers for compressed metadata, indexed by file extension
mimetypes = { '.gz':gzip.open , '.bz2':bz2.BZ2File , '.xz':lzma.open , '.xml':open , '':open }


class RepoCache :
    """Local copy of the metadata of an upstream repository.

Only repomd.xml and the primary file it references are stored. The primary
file is downloaded again only when the cached copy does not match the values
declared on the current repomd.xml."""

    def __init__ ( self , repo , cachedir ) :
        self.repo = repo
        self.path = os.path.join( cachedir , repo.name )
        self.primary = None

    def __str__ ( self ) :
        return self.path

    def repomd_path ( self ) :
        return os.path.join( self.path , "repomd.xml" )

    def update ( self ) :
        """Refreshes the cached metadata. Raises CatalogError if it cannot be brought
up to date, as a partial catalog must never be used"""

        if not os.path.isdir( self.path ) :
            os.makedirs( self.path , exist_ok=True )

        base_url = self.repo.base_url()
        url = utils.urljoin( base_url , "repodata/repomd.xml" )
        logger.info( "Caching %s metadata from %s" % ( self.repo , url ) )

        try :
            content = utils.download( url , self.repo.timeout )
            items = xml_repomd( io.BytesIO(content) )
        except Exception as ex :
            raise CatalogError( "Failed to get repomd.xml for %s : %s" % ( self.repo , ex ) )

        item = items.get( 'primary' )
        if not item or not item.get( 'href' ) or not item.get( 'checksum' ) :
            raise CatalogError( "No primary metadata within repomd.xml for %s" % self.repo )

        primary = os.path.join( self.path , os.path.basename( item['href'] ) )

        valid = False
        if os.path.isfile( primary ) and item['size'] is not None :
            try :
                valid = utils.integrity_check( primary , item['size'] , item['checksum'] , item['checksum_type'] )
            except ( OSError , ValueError ) as ex :
                logger.warning( "Cannot verify cached %s : %s" % ( primary , ex ) )

        if valid :
            logger.info( "Cached primary metadata for %s is up to date" % self.repo )
        else :
            size = item['size']
            if size is None :
                raise CatalogError( "No size declared for primary metadata of %s" % self.repo )
            job = FetchJob( utils.urljoin( base_url , item['href'] ) , primary , size ,
                            item['checksum'] , item['checksum_type'] , os.path.basename(primary) )
            try :
                job.validate()
                utils.download_file( job , self.repo.timeout , self.repo.retries )
            except Exception as ex :
                raise CatalogError( "Failed to download primary metadata for %s : %s" % ( self.repo , ex ) )

        for name in os.listdir( self.path ) :
            if name != os.path.basename(primary) and name.endswith( ( "primary.xml" , ".gz" , ".bz2" , ".xz" , ".zst" ) ) :
                logger.debug( "Removing stale metadata %s" % name )
                os.unlink( os.path.join( self.path , name ) )

        with open( self.repomd_path() , 'wb' ) as fd :
            fd.write( content )

        self.primary = primary
        return self

    def packages ( self ) :
        """Returns the package entries on the cached primary metadata, in upstream order"""

        if not self.primary :
            raise CatalogError( "Metadata for %s has not been cached" % self.repo )

        extension = os.path.splitext( self.primary )[1]
        if extension not in mimetypes :
            raise CatalogError( "Unsupported compression '%s' for %s" % ( extension , self.primary ) )

        try :
            with mimetypes[extension]( self.primary , 'rb' ) as fd :
                return xml_package_list( fd )
        except ( OSError , EOFError , lzma.LZMAError , xml.sax.SAXException ) as ex :
            raise CatalogError( "Error reading packages from %s : %s" % ( self.primary , ex ) )
        except ( TypeError , ValueError ) as ex :
            raise CatalogError( "Malformed package entry on %s : %s" % ( self.primary , ex ) )
