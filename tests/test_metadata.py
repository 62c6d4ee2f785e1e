from build_gallery import AlbumMetadata, coerce_metadata, load_album_metadata, load_image_metadata


def test_missing_sidecar_gives_defaults(tmp_path):
    assert load_album_metadata(tmp_path) == AlbumMetadata("", "", "")


def test_yml_is_probed_before_json(make_tree):
    root = make_tree({
        "a/album.yml": "title: From yml\n",
        "a/album.json": '{"title": "From json"}',
    })
    assert load_album_metadata(root / "a").title == "From yml"


def test_broken_json_falls_through_to_defaults(make_tree):
    root = make_tree({"a/album.json": "{not json"})
    assert load_album_metadata(root / "a") == AlbumMetadata()


def test_unreadable_candidate_moves_to_next(make_tree):
    root = make_tree({"a/album.json": '{"title": "Fallback"}'})
    (root / "a" / "album.yml").write_bytes(b"\xff\xfe\xfa title")
    assert load_album_metadata(root / "a").title == "Fallback"


def test_json_values_are_coerced_and_trimmed(make_tree):
    root = make_tree({"a/album.json": '{"title": "  T  ", "date": 2024, "desc": null}'})
    meta = load_album_metadata(root / "a")
    assert meta == AlbumMetadata(title="T", date="2024", description="")


def test_description_key_is_accepted():
    assert coerce_metadata({"description": "long"}).description == "long"
    assert coerce_metadata({"desc": "short", "description": "long"}).description == "short"


def test_image_sidecar_sits_next_to_image(make_tree):
    root = make_tree({
        "a/pic.jpg": "",
        "a/pic.yaml": "title: Sunset # caption\n",
    })
    assert load_image_metadata(root / "a" / "pic.jpg").title == "Sunset"
    assert load_image_metadata(root / "a" / "other.jpg") == AlbumMetadata()


def test_album_sidecar_is_not_an_image_caption(make_tree):
    root = make_tree({"a/album.png": "", "a/album.yml": "title: Folder title\n"})
    assert load_image_metadata(root / "a" / "album.png") == AlbumMetadata()
    assert load_album_metadata(root / "a").title == "Folder title"
