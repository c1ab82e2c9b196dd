# Utils package: logging, waits, price parsing, overlay handling
