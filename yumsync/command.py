
__all__ = [ 'main' ]

import sys
import logging
import argparse

import yumsync
from yumsync import logger
from yumsync.config import ConfigError , read_mirror_config , get_all_mirror_names
from yumsync.cache import CatalogError
from yumsync.gpg import SignatureError


def parse_args ( argv ) :
    parser = argparse.ArgumentParser( prog="yumsync" , description="Mirror yum repositories into local package directories." )
    parser.add_argument( "repos" , nargs="*" , metavar="repo" ,
                         help="Repository sections to synchronize, all of them if none given" )
    parser.add_argument( "-c" , "--config" , dest="config" , default=None ,
                         help="Read only this configuration file instead of /etc/yumsync.conf and /etc/yumsync.d" )
    parser.add_argument( "--cachedir" , default=None ,
                         help="Directory for cached metadata, overriding the configured one" )
    parser.add_argument( "-v" , "--verbose" , action="store_true" , help="Show progress messages" )
    parser.add_argument( "-d" , "--debug" , action="store_true" , help="Show debug messages" )
    parser.add_argument( "--version" , action="version" , version="%(prog)s " + yumsync.__version__ )
    return parser.parse_args( argv )


def main ( argv=None ) :
    """Synchronizes the requested repositories. Returns the number of them
that could not be synchronized"""

    args = parse_args( argv )

    if args.debug :
        logger.setLevel( logging.DEBUG )
    elif args.verbose :
        logger.setLevel( logging.INFO )
    else :
        logger.setLevel( logging.WARNING )

    repos = args.repos
    if not repos :
        try :
            repos = get_all_mirror_names( args.config )
        except ConfigError as ex :
            logger.critical( "%s" % ex )
            return 1
        if not repos :
            logger.critical( "No repositories configured" )
            return 1

    failed = []
    for name in repos :
        try :
            config = read_mirror_config( name , args.config )
            repo = yumsync.yum_repository( config )
            repo.sync( args.cachedir )
        except ( ConfigError , CatalogError , SignatureError , OSError ) as ex :
            logger.error( "Cannot synchronize %s : %s" % ( name , ex ) )
            failed.append( name )

    if failed :
        logger.error( "Failed repositories : %s" % " ".join(failed) )
    return len(failed)


if __name__ == "__main__" :
    sys.exit( main() )
