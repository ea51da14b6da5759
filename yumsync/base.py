
__all__ = [ 'MirrorRepository' ]

import os

from yumsync import logger
from yumsync import utils
from yumsync.config import ConfigError
from yumsync.cache import CatalogError


class MirrorRepository :

    required = ( 'name' , 'localpath' )

    def __init__ ( self , config ) :
        missing = []
        for key in self.required :
            if not config.get(key) :
                missing.append( key )
        if missing :
            raise ConfigError( "Broken '%s' configuration : missing %s." % ( getattr( config , 'name' , None ) , ", ".join(missing) ) )
        if not config.get( 'baseurl' ) and not config.get( 'mirrorlist' ) :
            raise ConfigError( "Upstream repository for '%s' has no mirror list or base URL" % config['name'] )

        self.name = getattr( config , 'name' , config['name'] )
        self.localpath = config['localpath']
        self.repo_url = config.get( 'baseurl' )
        self.mirrorlist = config.get( 'mirrorlist' )
        self.threads = config.get( 'threads' , 4 )
        self.retries = config.get( 'retries' , 0 )
        self.timeout = config.get( 'timeout' , 60 )

    def __str__ ( self ) :
        return self.name

    def repo_path ( self ) :
        return self.localpath

    def base_url ( self ) :
        """Returns the upstream url, resolving the mirror list on first use"""
        if not self.repo_url :
            self.repo_url = self.resolve_mirrorlist()
        return self.repo_url

    def resolve_mirrorlist ( self ) :
        try :
            content = utils.download( self.mirrorlist , self.timeout )
        except Exception as ex :
            raise CatalogError( "Cannot get mirror list %s : %s" % ( self.mirrorlist , ex ) )
        for line in content.decode( 'utf-8' , 'replace' ).splitlines() :
            line = line.strip()
            if not line or line.startswith( "#" ) :
                continue
            if line.split( "://" , 1 )[0] in ( "http" , "https" , "ftp" , "file" ) :
                if not line.endswith( "/" ) :
                    line += "/"
                logger.info( "Using mirror %s for %s" % ( line , self ) )
                return line
        raise CatalogError( "No usable mirror found on %s" % self.mirrorlist )

    def build_local_tree ( self ) :
        if not os.path.isdir( self.repo_path() ) :
            os.makedirs( self.repo_path() , 0o750 )
