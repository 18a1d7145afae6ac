"""GraphQL queries against the Stak protocol subgraph."""

GET_FLYING_ICOS = """
  query GetFlyingICOs {
    flyingICOs(first: 100, orderBy: createdAt, orderDirection: desc) {
      id
      name
      symbol
      treasury
      vestingStart
      vestingEnd
      tokenCap
      tokensPerUsd
      totalSupply
      tokensUnlocked
      positionCount
      createdAt
    }
  }
"""

GET_FLYING_ICO = """
  query GetFlyingICO($id: ID!) {
    flyingICO(id: $id) {
      id
      name
      symbol
      treasury
      vestingStart
      vestingEnd
      tokenCap
      tokensPerUsd
      totalSupply
      tokensUnlocked
      positionCount
      createdAt
      acceptedAssets {
        id
        address
        symbol
        decimals
        totalAssets
      }
      positions(first: 100, orderBy: createdAt, orderDirection: desc) {
        id
        positionId
        user
        assetAmount
        tokenAmount
        vestingAmount
        asset
        isClosed
        createdAt
      }
    }
  }
"""

GET_STAK_VAULTS = """
  query GetStakVaults {
    stakVaults(first: 100, orderBy: createdAt, orderDirection: desc) {
      id
      asset
      name
      symbol
      decimals
      vestingStart
      vestingEnd
      totalAssets
      investedAssets
      totalPerformanceFees
      totalShares
      positionCount
      createdAt
    }
  }
"""

GET_STAK_VAULT = """
  query GetStakVault($id: ID!) {
    stakVault(id: $id) {
      id
      asset
      name
      symbol
      decimals
      performanceRate
      vestingStart
      vestingEnd
      totalAssets
      investedAssets
      totalPerformanceFees
      totalShares
      totalSharesUnlocked
      positionCount
      createdAt
      positions(first: 100, orderBy: createdAt, orderDirection: desc) {
        id
        positionId
        user
        assetAmount
        shareAmount
        sharesUnlocked
        assetsDivested
        isClosed
        createdAt
      }
    }
  }
"""
