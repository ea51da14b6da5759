
__all__ = [ 'RpmError' , 'RpmSignature' , 'read_package' , 'vercmp' , 'labelcompare' ]

import os
import re
import struct

import createrepo_c


class RpmError ( Exception ) :
    pass


LEAD_SIZE = 96
LEAD_MAGIC = b'\xed\xab\xee\xdb'
HEADER_MAGIC = b'\x8e\xad\xe8'

RPM_BIN_TYPE = 7

# Signature header tags
SIGTAG_DSA = 267
SIGTAG_RSA = 268
SIGTAG_PGP = 1002
SIGTAG_GPG = 1005

# In order of preference, RSA and DSA cover the main header only
signature_tags = ( SIGTAG_RSA , SIGTAG_DSA , SIGTAG_PGP , SIGTAG_GPG )
header_only_tags = ( SIGTAG_RSA , SIGTAG_DSA )


def _read ( fd , size ) :
    data = fd.read( size )
    if len(data) != size :
        raise RpmError( "Unexpected end of file" )
    return data

def _intro ( fd ) :
    intro = _read( fd , 16 )
    if intro[:3] != HEADER_MAGIC :
        raise RpmError( "Bad header magic" )
    return struct.unpack( ">II" , intro[8:] )


class RpmSignature :
    """OpenPGP signatures stored on the signature header of an RPM file.

Reads the lead and the signature header from an open file, and locates the
main header without decoding it. The byte range covered by the main header is
available as header_start and header_end, which is also where the payload
begins. Signature tags must be binary blobs, anything else raises RpmError."""

    def __init__ ( self , fd ) :

        lead = _read( fd , LEAD_SIZE )
        if lead[:4] != LEAD_MAGIC :
            raise RpmError( "Not an RPM file, bad lead magic" )

        nindex , hsize = _intro( fd )
        index = _read( fd , nindex * 16 )
        store = _read( fd , hsize )

        self.tags = {}
        for i in range(nindex) :
            tag , type , offset , count = struct.unpack( ">IIII" , index[i*16:i*16+16] )
            if tag not in signature_tags :
                continue
            if type != RPM_BIN_TYPE or not count :
                raise RpmError( "Signature tag %d has type %d and %d bytes" % ( tag , type , count ) )
            if offset + count > hsize :
                raise RpmError( "Signature tag %d exceeds the data store" % tag )
            self.tags[tag] = store[offset:offset+count]

        # NOTE : signature header is padded up to a multiple of 8 bytes
        length = 16 + nindex * 16 + hsize
        padding = ( 8 - length % 8 ) % 8
        _read( fd , padding )

        self.header_start = LEAD_SIZE + length + padding
        nindex , hsize = _intro( fd )
        self.header_end = self.header_start + 16 + nindex * 16 + hsize

    def signature_tag ( self ) :
        """Returns the preferred signature as ( tag , bytes ) or None if unsigned"""
        for tag in signature_tags :
            if tag in self.tags :
                return tag , self.tags[tag]
        return None


# Changelog entries kept per package on other.xml
CHANGELOG_LIMIT = 10

def read_package ( filename , location=None ) :
    """Returns the createrepo_c Package for an rpm file, with checksum, header
range and dependencies filled in. Raises RpmError if the file cannot be read as
a package"""
    try :
        return createrepo_c.package_from_rpm( filename , createrepo_c.SHA256 , location , None , CHANGELOG_LIMIT )
    except createrepo_c.CreaterepoCError as ex :
        raise RpmError( "Cannot read %s : %s" % ( os.path.basename(filename) , ex ) )


_segment = re.compile( r"([0-9]+|[a-zA-Z]+|~|\^)" )

def vercmp ( a , b ) :
    """Compares two version or release strings the way rpm does"""
    if a == b :
        return 0
    sa = _segment.findall( a or "" )
    sb = _segment.findall( b or "" )
    while sa or sb :
        x = sa.pop(0) if sa else None
        y = sb.pop(0) if sb else None
        if x == "~" or y == "~" :
            if x != y :
                return -1 if x == "~" else 1
            continue
        if x == "^" or y == "^" :
            if x == y :
                continue
            if x is None :
                return -1
            if y is None :
                return 1
            return -1 if x == "^" else 1
        if x is None :
            return -1
        if y is None :
            return 1
        if x.isdigit() and y.isdigit() :
            x , y = int(x) , int(y)
        elif x.isdigit() :
            return 1
        elif y.isdigit() :
            return -1
        if x != y :
            return 1 if x > y else -1
    return 0


def labelcompare ( a , b ) :
    """Compares ( epoch , version , release ) tuples"""
    ea , eb = int( a[0] or 0 ) , int( b[0] or 0 )
    if ea != eb :
        return 1 if ea > eb else -1
    res = vercmp( a[1] , b[1] )
    if res :
        return res
    return vercmp( a[2] , b[2] )
