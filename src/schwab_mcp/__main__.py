from schwab_mcp import main

main()
