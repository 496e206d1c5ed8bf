import logging

import pytest

from configured.core.base.exceptions import DuplicateOptionError, UnregisteredOptionError
from configured.core.config.coercion import ValueType
from configured.core.config.formats import JSONFormat
from configured.core.config.option import ConfigOption
from configured.core.config.registry import VERSION_KEY, Config


def read_text(path):
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


@pytest.fixture
def yaml_path(tmp_path):
    return tmp_path / "config.yml"


class TestConfigInit:

    def test_format_from_extension(self, yaml_path):
        assert Config(yaml_path).format.format_name == "YAML"

    def test_explicit_format_wins(self, yaml_path):
        config = Config(yaml_path, JSONFormat.jsonc())
        assert config.format.format_name == "JSONC"

    def test_format_required_without_file(self):
        with pytest.raises(ValueError):
            Config()

    def test_file_can_be_set_later(self, tmp_path):
        config = Config(format=JSONFormat.json())
        assert config.file is None
        config.file = tmp_path / "later.json"
        config.save()
        assert (tmp_path / "later.json").exists()


class TestRegistration:

    def test_duplicate_key(self, yaml_path):
        config = Config(yaml_path)
        first = config.option_of("key", 1)
        with pytest.raises(DuplicateOptionError):
            config.register(ConfigOption.of("key", "other"))
        assert config.get(first) == 1
        assert config.options == (first,)
        assert config.options[0].default_value == 1

    def test_options_keep_registration_order(self, yaml_path):
        config = Config(yaml_path)
        config.register_all([ConfigOption.of("b", 1), ConfigOption.of("a", 2)])
        assert [option.key for option in config.options] == ["b", "a"]

    def test_defaults_before_load(self, yaml_path):
        config = Config(yaml_path)
        option = config.option_of("key", 42)
        assert config.get(option) == 42

    def test_set_unregistered(self, yaml_path):
        config = Config(yaml_path)
        with pytest.raises(UnregisteredOptionError):
            config.set(ConfigOption.of("missing", 1), 2)


class TestValues:

    def test_set_and_get(self, yaml_path):
        config = Config(yaml_path)
        option = config.option_of("key", 1)
        assert config.set(option, 5) is config
        assert config.get(option) == 5

    def test_set_none_restores_default(self, yaml_path):
        config = Config(yaml_path)
        option = config.option_of("key", 1)
        config.set(option, 5).set(option, None)
        assert config.get(option) == 1
        assert config.get_or_none(option) is None

    def test_reset(self, yaml_path):
        config = Config(yaml_path)
        option = config.option_of("key", 1)
        config.set(option, 5).reset(option)
        assert config.get(option) == 1

    def test_set_wrong_type_warns(self, yaml_path, caplog):
        config = Config(yaml_path)
        option = config.option_of("key", 1)
        config.set(option, "text")
        assert "does not match option 'key'" in caplog.text

    def test_set_matching_type_is_silent(self, yaml_path, caplog):
        config = Config(yaml_path)
        option = config.option_of("key", 1)
        config.set(option, 2)
        assert caplog.text == ""

    def test_wrong_held_type_falls_back(self, yaml_path, caplog):
        config = Config(yaml_path)
        option = config.option_of("key", 1)
        config.set(option, "not a number")
        assert config.get(option) == 1
        assert config.get_or_none(option) is None
        assert "Invalid value type for option 'key'" in caplog.text


class TestSaveAndLoad:

    def test_round_trip(self, yaml_path):
        config = Config(yaml_path)
        string_value = config.option_of("stringValue", "Test String", description="Test Description")
        integer_value = config.option_of("integerValue", 5)
        boolean_value = config.option_of("booleanValue", True)
        double_value = config.option_of("doubleValue", 1.23)
        float_value = config.option_of("floatValue", 4.56, value_type=ValueType.FLOAT)
        short_value = config.option_of("shortValue", 42, value_type=ValueType.SHORT)
        byte_value = config.option_of("byteValue", 7, value_type=ValueType.BYTE)
        char_value = config.option_of("charValue", "A", value_type=ValueType.CHAR)
        map_value = config.option_of("map", {"key": "value"}, str, str)
        list_value = config.option_of("list", ["a", "b", "c"], str)
        set_value = config.option_of("set", {1, 2, 3}, int)
        config.load()

        (config.set(string_value, "Jane Doe")
         .set(integer_value, 10)
         .set(boolean_value, False)
         .set(double_value, 9.87)
         .set(float_value, 6.54)
         .set(short_value, 24)
         .set(byte_value, 3)
         .set(char_value, "Z")
         .set(map_value, {"key": "value", "key2": "value2"})
         .set(list_value, ["x", "y", "z"])
         .set(set_value, {4, 5, 6}))
        config.save()
        config.load()

        assert config.get(string_value) == "Jane Doe"
        assert config.get(integer_value) == 10
        assert config.get(boolean_value) is False
        assert config.get(double_value) == 9.87
        assert config.get(float_value) == 6.54
        assert config.get(short_value) == 24
        assert config.get(byte_value) == 3
        assert config.get(char_value) == "Z"
        assert config.get(map_value) == {"key": "value", "key2": "value2"}
        assert config.get(list_value) == ["x", "y", "z"]
        assert config.get(set_value) == {4, 5, 6}

    @pytest.mark.parametrize("filename", ["config.json", "config.jsonc", "config.toml"])
    def test_round_trip_other_formats(self, tmp_path, filename):
        path = tmp_path / filename
        config = Config(path)
        name = config.option_of("name", "Player", description="Name of the player")
        ratio = config.option_of("ratio", 0.5)
        tags = config.option_of("tags", ["a"], str)
        config.load()
        config.set(name, "Jane").set(ratio, 1.5).set(tags, ["x", "y"]).save()

        reloaded = Config(path)
        name2 = reloaded.option_of("name", "Player")
        ratio2 = reloaded.option_of("ratio", 0.5)
        tags2 = reloaded.option_of("tags", ["a"], str)
        reloaded.load()
        assert reloaded.get(name2) == "Jane"
        assert reloaded.get(ratio2) == 1.5
        assert reloaded.get(tags2) == ["x", "y"]

    def test_load_creates_file(self, yaml_path):
        config = Config(yaml_path)
        config.option_of("enabled", True)
        config.option_of("list", ["a", "b", "c"], str)
        config.load()
        assert read_text(yaml_path) == "enabled: true\n\nlist:\n- a\n- b\n- c\n"

    def test_load_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "config.yml"
        config = Config(path)
        config.option_of("enabled", True)
        config.load()
        assert path.exists()

    def test_save_is_idempotent(self, yaml_path):
        config = Config(yaml_path)
        config.option_of("name", "Player", description="Name")
        config.option_of("values", {"a": 1}, str, int)
        config.save()
        first = read_text(yaml_path)
        config.load()
        config.save()
        assert read_text(yaml_path) == first

    def test_load_over_defaults(self, yaml_path):
        yaml_path.write_text("number: 7\n", encoding="utf-8")
        config = Config(yaml_path)
        number = config.option_of("number", 1)
        missing = config.option_of("missing", "default")
        config.load()
        assert config.get(number) == 7
        assert config.get(missing) == "default"

    def test_values_are_coerced(self, yaml_path):
        yaml_path.write_text("ratio: 2\nsmall: 300\n", encoding="utf-8")
        config = Config(yaml_path)
        ratio = config.option_of("ratio", 1.0)
        small = config.option_of("small", 0, value_type=ValueType.BYTE)
        config.load()
        assert config.get(ratio) == 2.0
        assert isinstance(config.get(ratio), float)
        assert config.get(small) == 44

    def test_wrong_type_in_file_falls_back(self, yaml_path, caplog):
        yaml_path.write_text("number: not a number\nname: Jane\n", encoding="utf-8")
        config = Config(yaml_path)
        number = config.option_of("number", 1)
        name = config.option_of("name", "Player")
        config.load()
        assert config.get(number) == 1
        assert config.get(name) == "Jane"
        assert "Invalid value type for option 'number'" in caplog.text

    def test_number_beyond_float_range_falls_back(self, yaml_path, caplog):
        yaml_path.write_text("ratio: " + "1" * 400 + "\nname: Jane\n", encoding="utf-8")
        config = Config(yaml_path)
        ratio = config.option_of("ratio", 0.5)
        name = config.option_of("name", "Player")
        config.load()
        assert config.get(ratio) == 0.5
        assert config.get(name) == "Jane"
        assert "Invalid value type for option 'ratio'" in caplog.text

    def test_corrupt_file_keeps_values(self, yaml_path, caplog):
        yaml_path.write_text("key: value\n  broken: [", encoding="utf-8")
        config = Config(yaml_path)
        option = config.option_of("key", "default")
        config.set(option, "in memory")
        config.load()
        assert config.get(option) == "in memory"
        assert "Failed to load config file" in caplog.text
        assert read_text(yaml_path) == "key: value\n  broken: ["

    def test_load_if_exists_does_not_create(self, yaml_path):
        config = Config(yaml_path)
        option = config.option_of("key", 1)
        config.load_if_exists()
        assert not yaml_path.exists()
        assert config.get(option) == 1

    def test_load_if_exists_reads_existing(self, yaml_path):
        yaml_path.write_text("key: 3\n", encoding="utf-8")
        config = Config(yaml_path)
        option = config.option_of("key", 1)
        config.load_if_exists_without_updating()
        assert config.get(option) == 3

    def test_no_file(self, caplog):
        config = Config(format=JSONFormat.json())
        config.load()
        config.save()
        assert caplog.text.count("No file specified for config!") == 2


class TestHiddenOptions:

    def test_hidden_default_is_omitted(self, yaml_path):
        config = Config(yaml_path)
        config.option_of("visible", 1)
        config.option_of("secret", "default", hidden=True)
        config.save()
        assert read_text(yaml_path) == "visible: 1\n"

        reloaded = Config(yaml_path)
        secret = reloaded.option_of("secret", "default", hidden=True)
        reloaded.load()
        assert reloaded.get(secret) == "default"

    def test_hidden_changed_value_is_written(self, yaml_path):
        config = Config(yaml_path)
        config.option_of("visible", 1)
        secret = config.option_of("secret", "default", hidden=True)
        config.set(secret, "changed").save()
        assert read_text(yaml_path) == "visible: 1\n\nsecret: changed\n"

    def test_hidden_value_is_loaded(self, yaml_path):
        yaml_path.write_text("secret: from file\n", encoding="utf-8")
        config = Config(yaml_path)
        secret = config.option_of("secret", "default", hidden=True)
        config.load_without_updating()
        assert config.get(secret) == "from file"


class TestUnregisteredData:

    def test_save_drops_unregistered(self, yaml_path):
        yaml_path.write_text("known: 1\nunknown: 2\n", encoding="utf-8")
        config = Config(yaml_path)
        config.option_of("known", 0)
        config.load()
        config.save()
        assert read_text(yaml_path) == "known: 1\n"

    def test_save_with_unregistered_data(self, yaml_path):
        yaml_path.write_text("zeta: 2\nknown: 1\nalpha: [1, 2]\n", encoding="utf-8")
        config = Config(yaml_path)
        config.option_of("known", 0)
        config.load()
        config.save_with_unregistered_data()
        assert read_text(yaml_path) == "known: 1\n\nzeta: 2\n\nalpha:\n- 1\n- 2\n"


class TestVersioning:

    def test_version_is_written(self, yaml_path):
        config = Config(yaml_path).set_version(2)
        config.option_of("key", 1)
        config.save()
        assert read_text(yaml_path) == "_version: 2\n\nkey: 1\n"

    def test_version_mismatch_rewrites_file(self, yaml_path, caplog):
        caplog.set_level(logging.INFO)
        yaml_path.write_text("_version: 1\nkey: 5\nremoved: true\n", encoding="utf-8")
        config = Config(yaml_path).set_version(2)
        key = config.option_of("key", 1)
        config.option_of("added", "new")
        config.load()
        assert config.get(key) == 5
        assert config.current_version() == 2
        assert read_text(yaml_path) == "_version: 2\n\nkey: 5\n\nadded: new\n"
        assert "has a different version" in caplog.text

    def test_missing_version_is_mismatch(self, yaml_path):
        yaml_path.write_text("key: 5\n", encoding="utf-8")
        config = Config(yaml_path).set_version(1)
        config.option_of("key", 1)
        config.load()
        assert read_text(yaml_path) == "_version: 1\n\nkey: 5\n"

    def test_matching_version_keeps_file(self, yaml_path):
        content = "_version: 3\nkey: 5\nextra: kept\n"
        yaml_path.write_text(content, encoding="utf-8")
        config = Config(yaml_path).set_version(3)
        config.option_of("key", 1)
        config.load()
        assert read_text(yaml_path) == content

    def test_load_without_updating_keeps_file(self, yaml_path):
        content = "_version: 1\nkey: 5\n"
        yaml_path.write_text(content, encoding="utf-8")
        config = Config(yaml_path).set_version(2)
        config.option_of("key", 1)
        config.load_without_updating()
        assert read_text(yaml_path) == content
        assert config.current_version() == 1

    def test_version_key(self, yaml_path):
        config = Config(yaml_path).set_version(1)
        assert config.version == 1
        assert VERSION_KEY in [option.key for option in config.options]


class TestOldKeys:

    def test_old_keys(self, yaml_path):
        config = (Config(yaml_path)
                  .old_key_generator(lambda key: key.replace("_", "-"))
                  .set_version(1))
        yaml_path.write_text("old-key: 5\nnew-key2: 10\n", encoding="utf-8")
        old_key = config.option_of("new_key", 10, old_keys=["old-key"])
        generated_key = config.option_of("new_key2", 20)
        config.load()
        assert config.get(old_key) == 5
        assert config.get(generated_key) == 10

    def test_migrated_file_uses_new_keys(self, yaml_path):
        yaml_path.write_text("old-key: 5\n", encoding="utf-8")
        config = Config(yaml_path).set_version(1)
        config.option_of("new_key", 10, old_keys=["old-key"])
        config.load()
        assert read_text(yaml_path) == "_version: 1\n\nnew_key: 5\n"

    def test_new_key_wins(self, yaml_path):
        yaml_path.write_text("old: 1\nnew: 2\n", encoding="utf-8")
        config = Config(yaml_path)
        option = config.option_of("new", 0, old_keys=["old"])
        config.load()
        assert config.get(option) == 2

    def test_first_old_key_wins(self, yaml_path):
        yaml_path.write_text("older: 1\nold: 2\n", encoding="utf-8")
        config = Config(yaml_path)
        option = config.register(ConfigOption.of("new", 0).with_old_keys("old", "older"))
        config.load()
        assert config.get(option) == 2


class TestListeners:

    def test_listener_receives_loaded_value(self, yaml_path):
        yaml_path.write_text("key: 5\n", encoding="utf-8")
        received = []
        config = Config(yaml_path)
        config.option_of("key", 1, on_load=received.append)
        config.load()
        config.load()
        assert received == [5, 5]

    def test_listener_receives_default_for_new_file(self, yaml_path):
        received = []
        config = Config(yaml_path)
        config.option_of("key", 1, on_load=received.append)
        config.load()
        assert received == [1]

    def test_listener_receives_default_for_invalid_value(self, yaml_path):
        yaml_path.write_text("key: text\n", encoding="utf-8")
        received = []
        config = Config(yaml_path)
        config.option_of("key", 1, on_load=received.append)
        config.load()
        assert received == [1]

    def test_listener_errors_propagate(self, yaml_path):
        yaml_path.write_text("key: 5\nother: 6\n", encoding="utf-8")

        def fail(value):
            raise RuntimeError(f"rejected {value}")

        config = Config(yaml_path)
        key = config.option_of("key", 1, on_load=fail)
        other = config.option_of("other", 2)
        with pytest.raises(RuntimeError, match="rejected 5"):
            config.load()
        # Values were already replaced before listeners ran
        assert config.get(key) == 5
        assert config.get(other) == 6

    def test_listener_not_called_when_load_fails(self, yaml_path):
        yaml_path.write_text("[unclosed", encoding="utf-8")
        received = []
        config = Config(yaml_path)
        config.option_of("key", 1, on_load=received.append)
        config.load()
        assert received == []


class TestWriteFailures:

    def test_unserializable_value_is_logged(self, yaml_path, caplog):
        config = Config(yaml_path)
        option = config.option_of("anything", None)
        config.set(option, object())
        config.save()
        assert "Failed to save config file" in caplog.text
