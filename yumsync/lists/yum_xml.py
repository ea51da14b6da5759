
__all__ = [ "xml_repomd" , "xml_package_list" ]

import xml.sax
import xml.dom.pulldom

from yumsync.lists.yum import PackageEntry


class yum_packages_handler ( xml.sax.handler.ContentHandler ) :
    """Collects PackageEntry objects from a primary.xml document. Namespace
processing is off, so format elements are matched with its rpm: prefix"""

    def __init__ ( self ) :
        xml.sax.handler.ContentHandler.__init__( self )
        self.pkgs = []
        self._pkg = None
        self._key = None
        self._text = []

    def startElement ( self , name , attrs ) :

        if name == 'package' :
            self._pkg = { 'epoch':0 , 'time_file':0 , 'time_build':0 , 'sourcerpm':"" ,
                          'checksum':"" , 'checksum_type':"" , 'size':0 , 'location':"" }
        elif self._pkg is None :
            return
        elif name in ( 'name' , 'arch' , 'rpm:sourcerpm' ) :
            self._key = name.replace( "rpm:" , "" )
            self._text = []
        elif name == 'checksum' :
            self._pkg['checksum_type'] = attrs.get( 'type' , "" )
            self._key = 'checksum'
            self._text = []
        elif name == 'version' :
            self._pkg['epoch'] = attrs.get( 'epoch' , "0" )
            self._pkg['version'] = attrs.get( 'ver' , "" )
            self._pkg['release'] = attrs.get( 'rel' , "" )
        elif name == 'size' :
            self._pkg['size'] = int( attrs.get( 'package' , "0" ) )
        elif name == 'time' :
            self._pkg['time_file'] = int( attrs.get( 'file' , "0" ) )
            self._pkg['time_build'] = int( attrs.get( 'build' , "0" ) )
        elif name == 'location' :
            self._pkg['location'] = attrs.get( 'href' , "" )

    def characters ( self , ch ) :
        if self._key :
            self._text.append( ch )

    def endElement ( self , name ) :
        if name == 'package' and self._pkg is not None :
            self.pkgs.append( PackageEntry( **self._pkg ) )
            self._pkg = None
        elif self._key and name.replace( "rpm:" , "" ) == self._key :
            self._pkg[ self._key ] = "".join( self._text ).strip()
            self._key = None


def xml_package_list ( fd ) :
    """Returns the list of packages within a primary.xml stream, in document order"""

    pkg_handler = yum_packages_handler()

    parser = xml.sax.make_parser()
    parser.setContentHandler( pkg_handler )

    parser.parse( fd )

    return pkg_handler.pkgs


def xml_repomd ( metafile ) :
    """Returns a dictionary with the items found on a repomd.xml, indexed by
data type. Every item holds href, checksum, checksum_type, size and timestamp"""

    repodoc = xml.dom.pulldom.parse( metafile )

    _name , _item = None , {}
    _key , _content = None , []

    for event,node in repodoc :
        if event == "START_ELEMENT" :
            if node.nodeName == "data" :
                _name = node.getAttribute( "type" )
                _item[_name] = { 'size':None , 'timestamp':None }
            elif _name is None :
                continue
            elif node.nodeName == "location" :
                _item[_name]["href"] = node.getAttribute( "href" )
            elif node.nodeName in ( "size" , "timestamp" , "checksum" ) :
                _key , _content = node.nodeName , []
                if node.nodeName == "checksum" :
                    _item[_name]["checksum_type"] = node.getAttribute( "type" )
        elif event == "END_ELEMENT" :
            if node.nodeName == "data" :
                _name = None
            elif _key and node.nodeName == _key :
                value = "".join( _content ).strip()
                if _key in ( "size" , "timestamp" ) :
                    value = int( float(value) )
                _item[_name][_key] = value
                _key , _content = None , []
        elif event == "CHARACTERS" :
            if _key :
                _content.append( node.nodeValue )

    return _item
