
import os
import gzip

from yumsync.repodata import createrepo , RepodataWriter
from yumsync.lists.yum_xml import xml_repomd , xml_package_list

from conftest import sha256


def read_index ( path ) :
    repodata = os.path.join( str(path) , "repodata" )
    with open( os.path.join( repodata , "repomd.xml" ) , 'rb' ) as fd :
        items = xml_repomd( fd )
    primary = os.path.join( str(path) , items['primary']['href'] )
    with gzip.open( primary , 'rb' ) as fd :
        return items , xml_package_list( fd )


def test_index_lists_packages ( tmp_path , make_rpm ) :
    alpha = make_rpm( tmp_path , "alpha" , epoch=1 , buildtime=1600000000 )
    make_rpm( tmp_path , "beta" , arch="noarch" )
    make_rpm( tmp_path , "beta" , source=True )

    report = createrepo( str(tmp_path) )

    assert report.packages == 3
    assert report.skipped == []
    items , packages = read_index( tmp_path )
    assert [ pkg.filename for pkg in packages ] == [ "alpha-1.0-1.x86_64.rpm" , "beta-1.0-1.noarch.rpm" , "beta-1.0-1.src.rpm" ]

    first = packages[0]
    assert first.name == "alpha"
    assert first.epoch == "1"
    assert first.arch == "x86_64"
    assert first.location == "alpha-1.0-1.x86_64.rpm"
    assert first.size == os.path.getsize( alpha )
    assert first.checksum == sha256( alpha )
    assert first.checksum_type == "sha256"
    assert first.time_build == 1600000000
    assert first.sourcerpm == "alpha-1.0-1.src.rpm"
    assert packages[2].arch == "src"

    assert items['primary']['href'].startswith( "repodata/" )
    assert items['primary']['href'].endswith( "-primary.xml.gz" )
    assert items['primary']['checksum'] == sha256( os.path.join( str(tmp_path) , items['primary']['href'] ) )


def test_rebuild_is_deterministic ( tmp_path , make_rpm ) :
    make_rpm( tmp_path , "alpha" )
    make_rpm( tmp_path , "beta" )

    createrepo( str(tmp_path) )
    with open( os.path.join( str(tmp_path) , "repodata" , "repomd.xml" ) , 'rb' ) as fd :
        first = fd.read()
    createrepo( str(tmp_path) )
    with open( os.path.join( str(tmp_path) , "repodata" , "repomd.xml" ) , 'rb' ) as fd :
        second = fd.read()

    assert first == second
    assert len( os.listdir( os.path.join( str(tmp_path) , "repodata" ) ) ) == 4
    assert sorted( name for name in os.listdir( str(tmp_path) ) if name != "repodata" ) == [ "alpha-1.0-1.x86_64.rpm" , "beta-1.0-1.x86_64.rpm" ]


def test_unparsable_file_is_skipped ( tmp_path , make_rpm , caplog ) :
    make_rpm( tmp_path , "alpha" )
    broken = tmp_path / "broken-1.0-1.x86_64.rpm"
    broken.write_bytes( b"\xed\xab\xee\xdb" + b"\0" * 40 )

    report = createrepo( str(tmp_path) )

    assert report.packages == 1
    assert report.skipped == [ str(broken) ]
    assert "broken-1.0-1.x86_64.rpm" in caplog.text
    items , packages = read_index( tmp_path )
    assert [ pkg.name for pkg in packages ] == [ "alpha" ]


def test_malformed_header_is_skipped ( tmp_path , make_rpm , caplog ) :
    make_rpm( tmp_path , "alpha" )
    empty_epoch = make_rpm( tmp_path , "broken" , epoch=[] )
    truncated = tmp_path / "cut-1.0-1.x86_64.rpm"
    with open( make_rpm( tmp_path , "whole" ) , 'rb' ) as fd :
        truncated.write_bytes( fd.read()[:150] )

    report = createrepo( str(tmp_path) )

    assert sorted( report.skipped ) == sorted( [ empty_epoch , str(truncated) ] )
    assert report.packages == 2
    assert "Skipping broken-1.0-1.x86_64.rpm from repodata" in caplog.text
    items , packages = read_index( tmp_path )
    assert [ pkg.name for pkg in packages ] == [ "alpha" , "whole" ]


def test_index_has_all_metadata_types ( tmp_path , make_rpm ) :
    make_rpm( tmp_path , "alpha" )
    createrepo( str(tmp_path) )

    with open( os.path.join( str(tmp_path) , "repodata" , "repomd.xml" ) , 'rb' ) as fd :
        items = xml_repomd( fd )
    assert sorted( items ) == [ "filelists" , "other" , "primary" ]
    for item in items.values() :
        assert os.path.isfile( os.path.join( str(tmp_path) , item['href'] ) )


def test_index_reflects_out_of_band_files ( tmp_path , make_rpm ) :
    make_rpm( tmp_path , "alpha" )
    createrepo( str(tmp_path) )

    make_rpm( tmp_path , "manual" , version="3.0" )
    createrepo( str(tmp_path) )

    items , packages = read_index( tmp_path )
    assert sorted( pkg.name for pkg in packages ) == [ "alpha" , "manual" ]


def test_empty_directory ( tmp_path ) :
    report = createrepo( str(tmp_path) )
    assert report.packages == 0
    items , packages = read_index( tmp_path )
    assert packages == []
    with open( os.path.join( str(tmp_path) , "repodata" , "repomd.xml" ) ) as fd :
        assert "<revision>0</revision>" in fd.read()


def test_writer_discarded_on_error ( tmp_path , make_rpm ) :
    make_rpm( tmp_path , "alpha" )
    createrepo( str(tmp_path) )
    before = sorted( os.listdir( os.path.join( str(tmp_path) , "repodata" ) ) )

    try :
        with RepodataWriter( os.path.join( str(tmp_path) , "repodata" ) ) :
            raise RuntimeError( "interrupted" )
    except RuntimeError :
        pass

    assert sorted( os.listdir( os.path.join( str(tmp_path) , "repodata" ) ) ) == before
    assert sorted( os.listdir( str(tmp_path) ) ) == [ "alpha-1.0-1.x86_64.rpm" , "repodata" ]
