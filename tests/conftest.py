
import os
import struct
import hashlib

import pytest

from yumsync.repodata import createrepo


RPM_INT32_TYPE = 4
RPM_STRING_TYPE = 6
RPM_BIN_TYPE = 7
RPM_STRING_ARRAY_TYPE = 8
RPM_I18NSTRING_TYPE = 9

RPMTAG_HEADERSIGNATURES = 62
RPMTAG_HEADERIMMUTABLE = 63


def build_header ( entries , region=None ) :
    """Serializes ( tag , type , value ) tuples as an rpm header structure,
optionally wrapped on an immutable region"""

    index = b""
    store = b""
    for tag , type , value in entries :
        if type == RPM_INT32_TYPE :
            store += b"\0" * ( ( 4 - len(store) % 4 ) % 4 )
            values = value if isinstance( value , list ) else [ value ]
            data = struct.pack( ">%dI" % len(values) , *values )
            count = len(values)
        elif type == RPM_STRING_TYPE :
            data = value.encode( 'utf-8' ) + b"\0"
            count = 1
        elif type in ( RPM_STRING_ARRAY_TYPE , RPM_I18NSTRING_TYPE ) :
            values = value if isinstance( value , list ) else [ value ]
            data = b"".join( v.encode( 'utf-8' ) + b"\0" for v in values )
            count = len(values)
        else :
            data = value
            count = len(value)
        index += struct.pack( ">IIII" , tag , type , len(store) , count )
        store += data

    nindex = len(entries)
    if region :
        nindex += 1
        index = struct.pack( ">IIII" , region , RPM_BIN_TYPE , len(store) , 16 ) + index
        store += struct.pack( ">IIiI" , region , RPM_BIN_TYPE , -nindex * 16 , 16 )

    intro = b"\x8e\xad\xe8\x01\0\0\0\0" + struct.pack( ">II" , nindex , len(store) )
    return intro + index + store


def main_header ( name , version="1.0" , release="1" , arch="x86_64" , epoch=None ,
                  buildtime=1500000000 , source=False ) :

    if source :
        arch = "src"
    entries = [ ( 100 , RPM_STRING_ARRAY_TYPE , [ "C" ] ) ,
                ( 1000 , RPM_STRING_TYPE , name ) ,
                ( 1001 , RPM_STRING_TYPE , version ) ,
                ( 1002 , RPM_STRING_TYPE , release ) ,
                ( 1004 , RPM_I18NSTRING_TYPE , "Test package %s" % name ) ,
                ( 1005 , RPM_I18NSTRING_TYPE , "Package used on <tests> & checks" ) ,
                ( 1006 , RPM_INT32_TYPE , buildtime ) ,
                ( 1009 , RPM_INT32_TYPE , 1234 ) ,
                ( 1014 , RPM_STRING_TYPE , "GPLv2" ) ,
                ( 1022 , RPM_STRING_TYPE , arch ) ,
                ( 1047 , RPM_STRING_ARRAY_TYPE , [ name , "%s(x86-64)" % name ] ) ,
                ( 1048 , RPM_INT32_TYPE , [ 0 , 0x01000000 | 0x08 , 0x0c ] ) ,
                ( 1049 , RPM_STRING_ARRAY_TYPE , [ "libc.so.6" , "rpmlib(PayloadIsXz)" , "bash" ] ) ,
                ( 1050 , RPM_STRING_ARRAY_TYPE , [ "" , "5.2-1" , "4.2-1" ] ) ]
    if epoch is not None :
        entries.append( ( 1003 , RPM_INT32_TYPE , epoch ) )
    if not source :
        entries.append( ( 1044 , RPM_STRING_TYPE , "%s-%s-%s.src.rpm" % ( name , version , release ) ) )
    entries.sort( key=lambda entry : entry[0] )
    return build_header( entries , RPMTAG_HEADERIMMUTABLE )


def rpm_bytes ( name , version="1.0" , release="1" , arch="x86_64" , epoch=None ,
                buildtime=1500000000 , source=False , signature=None , signer=None , payload=None ) :
    """Returns the content of a minimal but well formed rpm file.

Signature tags are taken from the signature dictionary, or from the one
returned by signer when called with the main header and payload bytes."""

    lead = b"\xed\xab\xee\xdb\x03\x00" + struct.pack( ">HH" , 1 if source else 0 , 1 )
    lead += ( "%s-%s-%s" % ( name , version , release ) ).encode( 'utf-8' )[:65].ljust( 66 , b"\0" )
    lead += struct.pack( ">HH" , 1 , 5 ) + b"\0" * 16

    header = main_header( name , version , release , arch , epoch , buildtime , source )
    if payload is None :
        payload = ( "payload of %s-%s-%s " % ( name , version , release ) ).encode( 'utf-8' ) * 20

    if signer :
        signature = signer( header , payload )
    sigentries = [ ( tag , RPM_BIN_TYPE , value ) for tag , value in sorted( ( signature or {} ).items() ) ]
    sig = build_header( sigentries , RPMTAG_HEADERSIGNATURES )
    sig += b"\0" * ( ( 8 - len(sig) % 8 ) % 8 )

    return lead + sig + header + payload


def rpm_filename ( name , version="1.0" , release="1" , arch="x86_64" , source=False , **kwargs ) :
    return "%s-%s-%s.%s.rpm" % ( name , version , release , "src" if source else arch )


@pytest.fixture
def make_rpm () :
    """Writes a synthetic rpm into a directory, returning its path"""
    def _make_rpm ( path , name , **kwargs ) :
        filename = os.path.join( str(path) , rpm_filename( name , **kwargs ) )
        with open( filename , 'wb' ) as fd :
            fd.write( rpm_bytes( name , **kwargs ) )
        return filename
    return _make_rpm


@pytest.fixture
def upstream ( tmp_path , make_rpm ) :
    """An upstream yum repository with three packages, served from a file:// url"""

    path = tmp_path / "upstream"
    path.mkdir()
    make_rpm( path , "alpha" )
    make_rpm( path , "beta" , version="2.1" )
    make_rpm( path , "gamma" , arch="noarch" )
    createrepo( str(path) )
    return path


@pytest.fixture
def repo_config ( tmp_path , upstream ) :
    return { 'name':"test" ,
             'baseurl':upstream.as_uri() + "/" ,
             'localpath':str( tmp_path / "mirror" ) ,
             'cachedir':str( tmp_path / "cache" ) ,
             'threads':2 }


def sha256 ( filename ) :
    with open( filename , 'rb' ) as fd :
        return hashlib.sha256( fd.read() ).hexdigest()
