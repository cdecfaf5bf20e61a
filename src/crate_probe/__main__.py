from crate_probe.cli.app import main

main()
