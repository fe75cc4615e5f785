from zabbix_setup.cli import main

main()
