import io
import tempfile
import unittest
from pathlib import Path

from geoindex.errors import NormalizeError
from geoindex.models import NO_DATA, Entry
from geoindex.normalize import (
    load_entries,
    normalize_country_name,
    parse_blocks,
    parse_countries,
    parse_locations,
)

from helpers import (
    AFGHANISTAN,
    ANDORRA,
    ANTIGUA,
    BLOCKS_CSV,
    COUNTRIES_CSV,
    EMIRATES,
    FIVE_ENTRIES,
    LOCATIONS_CSV,
)

COUNTRIES = {
    "AC": "Ascension Island",
    "AD": "Andorra",
    "AE": "United Arab Emirates",
    "AF": "Afghanistan",
    "AG": "Antigua and Barbuda",
}

LOCATIONS = {1: ANDORRA, 2: EMIRATES, 3: AFGHANISTAN, 4: ANTIGUA}


class TestNormalize(unittest.TestCase):
    def test_parse_countries(self):
        self.assertEqual(parse_countries(COUNTRIES_CSV), COUNTRIES)

    def test_country_name_and_casing(self):
        self.assertEqual(normalize_country_name("Antigua And Barbuda"), "Antigua and Barbuda")
        self.assertEqual(normalize_country_name("Andorra"), "Andorra")
        self.assertEqual(normalize_country_name("Andes And Anderson"), "Andes and Anderson")

    def test_parse_locations(self):
        locations = parse_locations(LOCATIONS_CSV, COUNTRIES)
        self.assertEqual(locations, LOCATIONS)
        self.assertIsInstance(locations[2].latitude, float)
        self.assertEqual(locations[4].longitude, -61.8)

    def test_unknown_country_gets_empty_name(self):
        csv = b"locId,country,region,city,postalCode,latitude,longitude,metroCode,areaCode\n7,ZZ,,,,1.0,2.0,,\n"
        with self.assertLogs("geoindex.normalize", level="WARNING"):
            locations = parse_locations(csv, COUNTRIES)
        self.assertEqual(locations[7].country_name, "")
        self.assertEqual(locations[7].country_code, "ZZ")

    def test_parse_blocks(self):
        self.assertEqual(parse_blocks(BLOCKS_CSV, LOCATIONS), FIVE_ENTRIES)

    def test_gaps_between_blocks_get_no_data(self):
        csv = b'startIpNum,endIpNum,locId\n"200","299","2"\n"0","99","1"\n'
        self.assertEqual(
            parse_blocks(csv, LOCATIONS),
            [Entry(0, ANDORRA), Entry(100, NO_DATA), Entry(200, EMIRATES)],
        )

    def test_unknown_location_is_no_data(self):
        csv = b"startIpNum,endIpNum,locId\n1,10,99\n"
        with self.assertLogs("geoindex.normalize", level="WARNING"):
            entries = parse_blocks(csv, LOCATIONS)
        self.assertEqual(entries, [Entry(1, NO_DATA)])

    def test_overlapping_blocks(self):
        csv = b"startIpNum,endIpNum,locId\n1,10,1\n5,20,2\n"
        with self.assertRaises(NormalizeError):
            parse_blocks(csv, LOCATIONS)

    def test_inverted_block(self):
        with self.assertRaises(NormalizeError):
            parse_blocks(b"startIpNum,endIpNum,locId\n10,1,1\n", LOCATIONS)

    def test_missing_columns(self):
        with self.assertRaises(NormalizeError):
            parse_blocks(b"start,end,locId\n1,2,1\n", LOCATIONS)

    def test_non_numeric_values(self):
        with self.assertRaises(NormalizeError):
            parse_blocks(b"startIpNum,endIpNum,locId\nabc,2,1\n", LOCATIONS)

    def test_ragged_rows(self):
        csv = b'startIpNum,endIpNum,locId\n"16777216","16777471","1"\n"16777472","16778239","2","9"\n'
        with self.assertRaises(NormalizeError):
            parse_blocks(csv, LOCATIONS)

    def test_empty_table(self):
        with self.assertRaises(NormalizeError):
            parse_countries(b"\n# only a banner\n")

    def test_sources_may_be_files_or_streams(self):
        with tempfile.TemporaryDirectory() as tmp:
            countries = Path(tmp) / "countries.csv"
            countries.write_bytes(COUNTRIES_CSV)
            entries = load_entries(
                countries,
                io.BytesIO(LOCATIONS_CSV),
                io.StringIO(BLOCKS_CSV.decode()),
            )
        self.assertEqual(entries, FIVE_ENTRIES)


if __name__ == "__main__":
    unittest.main()
