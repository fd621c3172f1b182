def test_import_package_and_version_smoke():
    import sfrest

    # __version__ comes from installed metadata ("unknown" when running from a checkout)
    assert isinstance(sfrest.__version__, str)


def test_public_names_are_exported():
    import sfrest

    for name in sfrest.__all__:
        assert hasattr(sfrest, name), name


def test_main_module_imports():
    from sfrest.__main__ import main

    assert callable(main)
