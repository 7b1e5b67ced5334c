"""Tests for the store query builder."""

from uuid import uuid4

import pytest

from rolnet.store import EthernetSwitchPort, EthernetSwitchVLAN, PoEType, QueryBuilder, QueryError


def _port(name: str = "1/0/1", **kwargs) -> EthernetSwitchPort:
    return EthernetSwitchPort(ethernet_switch_id=kwargs.pop("ethernet_switch_id", uuid4()), name=name, **kwargs)


class TestConditions:
    """Test single comparisons."""

    def test_equal_uuid_accepts_string(self):
        """A UUID field compares equal to its string form."""
        port = _port()
        assert QueryBuilder().where("id", "==", str(port.id)).matches(port)

    def test_not_equal(self):
        port = _port("1/0/2")
        assert QueryBuilder().where("name", "!=", "1/0/1").matches(port)

    def test_ordering_comparators(self):
        vlan = EthernetSwitchVLAN(ethernet_switch_id=uuid4(), vlan_id=42)
        assert QueryBuilder().where("vlan_id", ">", 10).where("vlan_id", "<=", 42).matches(vlan)
        assert not QueryBuilder().where("vlan_id", ">=", 43).matches(vlan)

    def test_enum_compared_by_value(self):
        port = _port(poe_type=PoEType.POE_PLUS)
        assert QueryBuilder().where("poe_type", "==", "poe+").matches(port)

    def test_like_is_case_insensitive(self):
        port = _port("GigabitEthernet1/0/3")
        assert QueryBuilder().where("name", "like", "%ethernet1/0/_").matches(port)
        assert not QueryBuilder().where("name", "LIKE", "ether%").matches(port)

    def test_like_matches_list_elements(self):
        """LIKE on a list field matches if any element matches."""
        member = uuid4()
        vlan = EthernetSwitchVLAN(ethernet_switch_id=uuid4(), vlan_id=1, tagged_ports=[uuid4(), member])
        assert QueryBuilder().where("tagged_ports", "LIKE", f"%{member}%").matches(vlan)

    def test_none_equality(self):
        port = _port()
        assert QueryBuilder().where("deleted_at", "==", None).matches(port)
        assert not QueryBuilder().where("deleted_at", "!=", None).matches(port)

    def test_unknown_comparator(self):
        with pytest.raises(QueryError):
            QueryBuilder().where("name", "=~", "x")

    def test_unknown_field(self):
        with pytest.raises(QueryError):
            QueryBuilder().where("speed", "==", 1000).matches(_port())


class TestComposition:
    """Test AND/OR precedence and nested groups."""

    def test_empty_matches_everything(self):
        assert QueryBuilder().matches(_port())

    def test_and_binds_tighter_than_or(self):
        """a AND b OR c reads (a AND b) OR c."""
        query = QueryBuilder().where("name", "==", "x").where("poe_enabled", "==", True).or_("name", "==", "1/0/1")
        assert query.matches(_port("1/0/1"))
        assert not query.matches(_port("x"))
        assert query.matches(_port("x", poe_enabled=True))

    def test_nested_group(self):
        """switch AND (id1 OR id2) keeps the switch condition for every id."""
        switch_id = uuid4()
        first = _port("1/0/1", ethernet_switch_id=switch_id)
        second = _port("1/0/2", ethernet_switch_id=switch_id)
        foreign = _port("1/0/1")

        ids = QueryBuilder().or_("id", "==", first.id).or_("id", "==", foreign.id)
        query = QueryBuilder().where("ethernet_switch_id", "==", switch_id).where_query(ids)

        assert query.matches(first)
        assert not query.matches(second)
        assert not query.matches(foreign)

    def test_or_query(self):
        query = QueryBuilder().where("name", "==", "a").or_query(QueryBuilder().where("name", "==", "b"))
        assert query.matches(_port("b"))

    def test_empty_group_ignored(self):
        query = QueryBuilder().where("name", "==", "a").where_query(QueryBuilder())
        assert query.build() == QueryBuilder().where("name", "==", "a").build()

    def test_str(self):
        query = QueryBuilder().where("name", "==", "a").or_query(QueryBuilder().where("vlan_id", ">", 1))
        assert str(query) == "name == 'a' OR (vlan_id > 1)"
