
__all__ = [ 'ConfigError' , 'MirrorConf' , 'read_config' , 'read_mirror_config' , 'get_all_mirror_names' ]

import os
import glob
import datetime
import configparser

from yumsync import logger


class ConfigError ( Exception ) :
    pass


# Names of main configuration file and configuration subdirectory

mirrorconf = "/etc/yumsync.conf"
mirrordir  = "/etc/yumsync.d"


# Values on default_params are overriden by definitions at global section, and
#   later by settings within the repository definition.
#   threads - width of the download pool
#   retries - extra attempts for every failed download
#   timeout - seconds to wait on network operations
#   gpgcheck - verify package signatures after download

default_params = {}

default_params['threads'] = 4
default_params['retries'] = 0
default_params['timeout'] = 60
default_params['gpgcheck'] = False

boolean_options = ( 'gpgcheck' , 'includesources' , 'newonly' , 'deleteremoved' )


def get_files ( filename=None ) :
    if filename :
        return [ filename ]
    conffiles = [ mirrorconf ]
    conffiles.extend( sorted( glob.glob( os.path.join( mirrordir , "*.conf" ) ) ) )
    return conffiles


def read_config ( conffiles ) :
    """Reads every configuration file into a single parser. Sections defined on
more than one file are rejected"""

    config = configparser.RawConfigParser()
    found = []
    owners = {}
    for filename in conffiles :
        if not os.path.isfile( filename ) :
            continue
        single = configparser.RawConfigParser()
        try :
            single.read( filename )
        except configparser.Error as ex :
            raise ConfigError( "Broken configuration file %s : %s" % ( filename , ex ) )
        for section in single.sections() :
            if section != "global" and section in owners :
                raise ConfigError( "Multiple definitions of '%s' in %s , %s" % ( section , owners[section] , filename ) )
            owners[section] = filename
        config.read( filename )
        found.append( filename )
    if not found :
        raise ConfigError( "Could not find a valid configuration file" )
    return config


def _date ( name , value ) :
    try :
        return datetime.datetime.strptime( value , "%Y-%m-%d" )
    except ValueError :
        raise ConfigError( "Bad date '%s' for %s, expected YYYY-MM-DD" % ( value , name ) )


class MirrorConf ( dict ) :

    def __init__ ( self , reponame , config ) :
        self.name = reponame
        dict.__init__( self )
        self.read( config )

    def _get ( self , config , key , default=None ) :
        if config.has_option( self.name , key ) :
            return config.get( self.name , key )
        if config.has_option( "global" , key ) :
            return config.get( "global" , key )
        return default

    def read ( self , config ) :

        if self.name not in config.sections() :
            raise ConfigError( "Repository '%s' is not configured" % self.name )

        self['name'] = self._get( config , "name" , self.name )

        self['baseurl'] = self._get( config , "baseurl" , "" ).strip()
        self['mirrorlist'] = self._get( config , "mirrorlist" , "" ).strip()
        if not self['baseurl'] and not self['mirrorlist'] :
            raise ConfigError( "Upstream repository for '%s' has no mirror list or base URL" % self.name )
        if self['baseurl'] and not self['baseurl'].endswith("/") :
            logger.debug( "Appending trailing '/' to baseurl of %s" % self.name )
            self['baseurl'] += "/"

        if config.has_option( self.name , "localpath" ) :
            self['localpath'] = config.get( self.name , "localpath" )
        else :
            destdir = self._get( config , "destdir" )
            if not destdir :
                raise ConfigError( "Broken configuration, missing destination directory for '%s'" % self.name )
            self['localpath'] = os.path.join( destdir , self.name )

        self['cachedir'] = self._get( config , "cachedir" , "/var/cache/yumsync" )
        self['arch'] = self._get( config , "arch" , "" ).strip()
        self['gpgkey'] = self._get( config , "gpgkey" , "" ).split()

        self['mindate'] = None
        self['maxdate'] = None
        for key in ( 'mindate' , 'maxdate' ) :
            value = self._get( config , key )
            if value :
                self[key] = _date( key , value.strip() )

        for key in ( 'threads' , 'retries' , 'timeout' ) :
            value = self._get( config , key , default_params[key] )
            try :
                self[key] = int( value )
            except ValueError :
                raise ConfigError( "Bad value '%s' for %s on '%s'" % ( value , key , self.name ) )

        for key in boolean_options :
            self[key] = default_params.get( key , False )
            if config.has_option( self.name , key ) or config.has_option( "global" , key ) :
                section = self.name if config.has_option( self.name , key ) else "global"
                try :
                    self[key] = config.getboolean( section , key )
                except ValueError :
                    raise ConfigError( "Bad boolean '%s' for %s on '%s'" % ( config.get( section , key ) , key , self.name ) )

        if self['gpgcheck'] and not self['gpgkey'] :
            raise ConfigError( "GPG check enabled for '%s' but no gpgkey given" % self.name )

        if self['threads'] < 1 :
            raise ConfigError( "At least one download thread is required for '%s'" % self.name )


def read_mirror_config ( repo_name , filename=None ) :
    config = read_config( get_files( filename ) )
    return MirrorConf( repo_name , config )


def get_all_mirror_names ( filename=None ) :
    config = read_config( get_files( filename ) )
    return [ name for name in config.sections() if name != "global" ]
