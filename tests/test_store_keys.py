from store import keys


def test_keys_format():
    assert keys.incident("abc") == "ice:incident:abc"
    assert keys.incident_pattern() == "ice:incident:*"


def test_incident_id_round_trip_from_key():
    assert keys.incident_id_from_key(keys.incident("0f3a")) == "0f3a"
